from datetime import datetime, timedelta
from pathlib import Path

from liblet.objects import ObjectStore
from liblet.repository import Repository
from pytest import fixture


class TickingClock:
    """A clock that advances one second every time it is read."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, 0)) -> None:
        self.current = start

    def __call__(self) -> datetime:
        now = self.current
        self.current += timedelta(seconds=1)
        return now


@fixture
def clock() -> TickingClock:
    return TickingClock()


@fixture
def temp_repo_dir(tmp_path: Path) -> Path:
    working_dir = tmp_path / 'work'
    working_dir.mkdir()
    return working_dir


@fixture
def temp_repo(temp_repo_dir: Path, clock: TickingClock) -> Repository:
    repo = Repository(temp_repo_dir, clock=clock)
    repo.init()
    return repo


@fixture
def store(tmp_path: Path) -> ObjectStore:
    return ObjectStore(tmp_path / 'objects')
