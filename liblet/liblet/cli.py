"""The liblet command line.

Each invocation loads the repository, runs one command, prints its outcome and saves
the repository again."""

import argparse
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .errors import IntegrityError, RepositoryError
from .merge import MergeOutcome
from .persistence import load_required, save
from .repository import LogEntry, Repository

argparser = argparse.ArgumentParser(prog='liblet', description='A tiny local version-control system')
argparser.add_argument('-C', dest='directory', default='.', help='Run as if started in this directory.')
argparser.add_argument('-v', '--verbose', action='store_true', help='Log debug output.')

argsubparsers = argparser.add_subparsers(title='Commands', dest='command')
argsubparsers.required = True

argsp = argsubparsers.add_parser('init', help='Create a new repository in the working directory.')

argsp = argsubparsers.add_parser('add', help='Stage a file for the next commit.')
argsp.add_argument('path')

argsp = argsubparsers.add_parser('commit', help='Record the staged changes.')
argsp.add_argument('message')

argsp = argsubparsers.add_parser('rm', help='Unstage a file, or delete it and stage its removal.')
argsp.add_argument('path')

argsubparsers.add_parser('log', help='Show the history of the current branch.')
argsubparsers.add_parser('global-log', help='Show every commit ever made.')

argsp = argsubparsers.add_parser('find', help='Print the ids of commits with the given message.')
argsp.add_argument('message')

argsubparsers.add_parser('status', help='Show branches, staged files and working tree changes.')

checkout_argsp = argsubparsers.add_parser('checkout', help='Switch branches or restore a file.')
checkout_argsp.add_argument('branch', nargs='?', help='The branch to switch to.')
checkout_argsp.add_argument('-f', '--file', help='Restore this file instead of switching branches.')
checkout_argsp.add_argument('-c', '--commit', help='Take the file from this commit id instead of HEAD.')

argsp = argsubparsers.add_parser('branch', help='Create a branch at the current commit.')
argsp.add_argument('name')

argsp = argsubparsers.add_parser('rm-branch', help='Delete a branch.')
argsp.add_argument('name')

argsp = argsubparsers.add_parser('reset', help='Check out a commit and move the current branch to it.')
argsp.add_argument('commit')

argsp = argsubparsers.add_parser('merge', help='Merge a branch into the current branch.')
argsp.add_argument('name')
argsp.add_argument('--lines', action='store_true', help='Merge files changed on both sides line by line.')

READ_ONLY_COMMANDS = frozenset({'log', 'global-log', 'find', 'status'})


def print_entry(entry: LogEntry) -> None:
    print('===')
    print(f'Commit {entry.commit_ref}')
    if entry.commit.is_merge:
        print('Merge: ' + ' '.join(parent[:7] for parent in entry.commit.parents))
    print(entry.commit.timestamp)
    print(entry.commit.message)
    print()


def cmd_add(repo: Repository, args: argparse.Namespace) -> None:
    repo.add(args.path)


def cmd_commit(repo: Repository, args: argparse.Namespace) -> None:
    if not args.message.strip():
        print('Please enter a commit message.')
        return
    repo.commit(args.message)


def cmd_rm(repo: Repository, args: argparse.Namespace) -> None:
    repo.remove(args.path)


def cmd_log(repo: Repository, args: argparse.Namespace) -> None:
    for entry in repo.log():
        print_entry(entry)


def cmd_global_log(repo: Repository, args: argparse.Namespace) -> None:
    for entry in repo.global_log():
        print_entry(entry)


def cmd_find(repo: Repository, args: argparse.Namespace) -> None:
    found = repo.find(args.message)
    if not found:
        print('Found no commit with that message.')
    for digest in sorted(found):
        print(digest)


def cmd_status(repo: Repository, args: argparse.Namespace) -> None:
    status = repo.status()

    print('=== Branches ===')
    for name in status.branches:
        print(f'*{name}' if name == status.head else name)
    print()

    print('=== Staged Files ===')
    for path in status.staged:
        print(path)
    print()

    print('=== Removed Files ===')
    for path in status.removed:
        print(path)
    print()

    print('=== Modifications Not Staged For Commit ===')
    changes = [f'{path} (deleted)' for path in status.deleted] + [f'{path} (modified)' for path in status.modified]
    for line in sorted(changes):
        print(line)
    print()

    print('=== Untracked Files ===')
    for path in status.untracked:
        print(path)
    print()


def cmd_checkout(repo: Repository, args: argparse.Namespace) -> None:
    if args.file is None:
        if args.branch is None or args.commit is not None:
            checkout_argsp.error('Incorrect operands.')
        repo.checkout_branch(args.branch)
    elif args.branch is not None:
        checkout_argsp.error('Incorrect operands.')
    elif args.commit is not None:
        repo.checkout_file_from_commit(args.commit, args.file)
    else:
        repo.checkout_file(args.file)


def cmd_branch(repo: Repository, args: argparse.Namespace) -> None:
    repo.branch(args.name)


def cmd_rm_branch(repo: Repository, args: argparse.Namespace) -> None:
    repo.remove_branch(args.name)


def cmd_reset(repo: Repository, args: argparse.Namespace) -> None:
    repo.reset(args.commit)


def cmd_merge(repo: Repository, args: argparse.Namespace) -> None:
    result = repo.merge(args.name, line_merge=args.lines)
    match result.outcome:
        case MergeOutcome.UP_TO_DATE:
            print('Given branch is an ancestor of the current branch.')
        case MergeOutcome.FAST_FORWARD:
            print('Current branch fast-forwarded.')
        case MergeOutcome.CONFLICT:
            print('Encountered a merge conflict.')
        case MergeOutcome.MERGED:
            pass


COMMANDS: dict[str, Callable[[Repository, argparse.Namespace], None]] = {
    'add': cmd_add,
    'commit': cmd_commit,
    'rm': cmd_rm,
    'log': cmd_log,
    'global-log': cmd_global_log,
    'find': cmd_find,
    'status': cmd_status,
    'checkout': cmd_checkout,
    'branch': cmd_branch,
    'rm-branch': cmd_rm_branch,
    'reset': cmd_reset,
    'merge': cmd_merge,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = argparser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(levelname)s %(name)s: %(message)s')
    working_dir = Path(args.directory)

    try:
        if args.command == 'init':
            repo = Repository(working_dir)
            repo.init()
        else:
            repo = load_required(working_dir)
            COMMANDS[args.command](repo, args)

        if args.command not in READ_ONLY_COMMANDS:
            save(repo)
    except (RepositoryError, ValueError) as e:
        print(e)
    except IntegrityError as e:
        print(f'fatal: {e}', file=sys.stderr)
        return 1

    return 0
