"""Pytest configuration and shared fixtures."""

import gzip
import threading
from datetime import datetime, timedelta
from itertools import count
from pathlib import Path
from typing import Dict, List, Tuple

import pytest

from src.common.errors import IndexBuildError, StoreError
from src.repos.createrepo import CreaterepoRepository
from src.storage.base import ObjectStore, ObjectSummary

BASE_TIME = datetime(2024, 1, 1, 12, 0, 0)

REPOMD_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<repomd xmlns="http://linux.duke.edu/metadata/repo" xmlns:rpm="http://linux.duke.edu/metadata/rpm">
  <revision>1</revision>
  <data type="primary">
    <location href="repodata/primary.xml.gz"/>
  </data>
  <data type="filelists">
    <location href="repodata/filelists.xml.gz"/>
  </data>
</repomd>
"""

PACKAGE_TEMPLATE = """  <package type="rpm">
    <name>{name}</name>
    <arch>noarch</arch>
    <location href="{href}"/>
  </package>
"""


def render_primary(hrefs: List[str]) -> bytes:
    """Gzipped primary metadata declaring hrefs."""
    packages = "".join(
        PACKAGE_TEMPLATE.format(name=Path(href).stem, href=href) for href in hrefs
    )
    primary = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        f'<metadata xmlns="http://linux.duke.edu/metadata/common" packages="{len(hrefs)}">\n'
        f"{packages}</metadata>\n"
    )
    return gzip.compress(primary.encode("utf-8"))


def write_yum_index(root: Path, hrefs: List[str]) -> None:
    """Write a minimal repomd.xml and primary.xml.gz declaring hrefs."""
    repodata = Path(root) / "repodata"
    repodata.mkdir(parents=True, exist_ok=True)
    (repodata / "repomd.xml").write_text(REPOMD_TEMPLATE)
    (repodata / "primary.xml.gz").write_bytes(render_primary(hrefs))


class FakeObjectStore(ObjectStore):
    """In-memory object store recording a sequenced event log."""

    def __init__(self, page_size: int = 2):
        self.objects: Dict[str, Dict[str, Tuple[bytes, datetime]]] = {}
        self.page_size = page_size
        self.pages_listed = 0
        self.events: List[Tuple[int, str, str, str]] = []
        self.fail_get = set()
        self.fail_put = set()
        self.fail_delete = set()
        self._seq = count()
        self._lock = threading.Lock()

    def add(self, bucket: str, key: str, body: bytes = b"", last_modified: datetime = BASE_TIME):
        self.objects.setdefault(bucket, {})[key] = (body, last_modified)

    def keys(self, bucket: str) -> List[str]:
        return sorted(self.objects.get(bucket, {}))

    def body(self, bucket: str, key: str) -> bytes:
        return self.objects[bucket][key][0]

    def _record(self, op: str, key: str, stage: str) -> None:
        with self._lock:
            self.events.append((next(self._seq), op, key, stage))

    def writes(self) -> List[Tuple[int, str, str, str]]:
        return [e for e in self.events if e[1] in ("put", "delete")]

    def list_objects(self, bucket, prefix=""):
        keys = [k for k in self.keys(bucket) if k.startswith(prefix)]
        for start in range(0, len(keys), self.page_size):
            self.pages_listed += 1
            for key in keys[start:start + self.page_size]:
                body, modified = self.objects[bucket][key]
                yield ObjectSummary(key=key, last_modified=modified, size=len(body))

    def get_object(self, bucket, key, destination):
        self._record("get", key, "start")
        if key in self.fail_get:
            raise StoreError("get", bucket, key, "simulated failure")
        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(self.objects[bucket][key][0])
        self._record("get", key, "end")
        return destination

    def put_object(self, bucket, key, source):
        self._record("put", key, "start")
        if key in self.fail_put:
            raise StoreError("put", bucket, key, "simulated failure")
        with self._lock:
            self.objects.setdefault(bucket, {})[key] = (Path(source).read_bytes(), BASE_TIME)
        self._record("put", key, "end")

    def delete_object(self, bucket, key):
        self._record("delete", key, "start")
        if key in self.fail_delete:
            raise StoreError("delete", bucket, key, "simulated failure")
        with self._lock:
            self.objects.get(bucket, {}).pop(key, None)
        self._record("delete", key, "end")


class FakeCreaterepoRepository(CreaterepoRepository):
    """CreaterepoRepository whose index build indexes staged .rpm files directly."""

    builds: List[List[str]] = []
    fail_build = False

    def rebuild_index(self) -> None:
        if self.fail_build:
            raise IndexBuildError("createrepo", 1, stderr="simulated failure")
        hrefs = sorted(
            str(p.relative_to(self.root)).replace("\\", "/")
            for p in self.root.rglob("*.rpm")
        )
        write_yum_index(self.root, hrefs)
        FakeCreaterepoRepository.builds.append(hrefs)


@pytest.fixture
def fake_store():
    """Empty in-memory object store."""
    return FakeObjectStore()


@pytest.fixture
def fake_repository_factory():
    """Factory producing createrepo repositories with an in-process index build."""
    FakeCreaterepoRepository.builds = []
    FakeCreaterepoRepository.fail_build = False
    yield FakeCreaterepoRepository
    FakeCreaterepoRepository.fail_build = False


@pytest.fixture
def yum_index_writer():
    """Writer for minimal yum indexes."""
    return write_yum_index


@pytest.fixture
def seeded_store(fake_store):
    """Store with a consistent repository under pkgs/repo.

    Holds two builds of one snapshot artifact, one release package and
    an index declaring all three.
    """
    hrefs = ["a-1.0-SNAPSHOT-1.rpm", "a-1.0-SNAPSHOT-2.rpm", "b-2.0-1.rpm"]
    fake_store.add("pkgs", "repo/a-1.0-SNAPSHOT-1.rpm", b"a1", BASE_TIME)
    fake_store.add("pkgs", "repo/a-1.0-SNAPSHOT-2.rpm", b"a2", BASE_TIME + timedelta(hours=1))
    fake_store.add("pkgs", "repo/b-2.0-1.rpm", b"b", BASE_TIME)
    fake_store.add("pkgs", "other/unrelated.rpm", b"x", BASE_TIME)
    fake_store.add("pkgs", "repo/repodata/repomd.xml", REPOMD_TEMPLATE.encode("utf-8"))
    fake_store.add("pkgs", "repo/repodata/primary.xml.gz", render_primary(hrefs))
    return fake_store
