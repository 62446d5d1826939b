"""Constants shared across liblet."""

DEFAULT_REPO_DIR = '.liblet'
DEFAULT_BRANCH = 'master'

OBJECTS_SUBDIR = 'objects'
STATE_FILE = 'state.json'
STATE_SCHEMA_VERSION = 1

HASH_LENGTH = 40
HASH_CHARSET = '0123456789abcdef'
MIN_PREFIX_LENGTH = 6

ROOT_PARENT = 'none'
INITIAL_COMMIT_MESSAGE = 'initial commit'
TIME_FORMAT = '%Y-%m-%d %H:%M:%S'

CONFLICT_START = '<<<<<<< HEAD'
CONFLICT_SEPARATOR = '======='
CONFLICT_END = '>>>>>>>'
