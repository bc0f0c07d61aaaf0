"""Yum repository managed with createrepo.

Wraps the createrepo (or createrepo_c) command-line tool for index
generation and reads repodata/repomd.xml plus the primary metadata to
find the package files an index declares.
"""

import bz2
import gzip
import lzma
import subprocess
from pathlib import Path
from typing import IO, List, Optional

from lxml import etree

from ..common.errors import IndexBuildError, IndexParseError
from ..common.logger import get_logger
from .base import LocalRepository

logger = get_logger("createrepo")

NS = {
    "repo": "http://linux.duke.edu/metadata/repo",
    "common": "http://linux.duke.edu/metadata/common",
}

REPOMD_PATH = "repodata/repomd.xml"


class CreaterepoRepository(LocalRepository):
    """Local yum repository indexed by createrepo.

    The index is repodata/repomd.xml. Package locations come from the
    primary metadata file it references.
    """

    def __init__(
        self,
        root: Path,
        createrepo: str = "createrepo",
        extra_args: Optional[List[str]] = None,
        timeout: int = 600,
    ):
        """Initialize repository.

        Args:
            root: Repository root directory
            createrepo: createrepo executable name or path
            extra_args: Additional createrepo arguments
            timeout: Command timeout in seconds
        """
        super().__init__(root)
        self.createrepo = createrepo
        self.extra_args = list(extra_args or [])
        self.timeout = timeout

    @property
    def index_name(self) -> str:
        """Return the repomd.xml location."""
        return REPOMD_PATH

    def list_declared_files(self) -> List[str]:
        """List package locations declared by the primary metadata.

        Returns:
            Repo-relative package paths, in document order

        Raises:
            IndexParseError: If repomd.xml or the primary file cannot be read
        """
        repomd = self.root / REPOMD_PATH
        primary_href = self._find_primary_href(repomd)
        primary = self.root / primary_href

        try:
            with _open_metadata(primary) as f:
                tree = etree.parse(f)
        except (OSError, EOFError, lzma.LZMAError, etree.XMLSyntaxError) as e:
            raise IndexParseError(str(primary), str(e)) from e

        files = []
        for location in tree.getroot().iterfind("common:package/common:location", NS):
            href = location.get("href")
            if href:
                files.append(href)

        logger.debug(f"Index {repomd} declares {len(files)} files")
        return files

    def _find_primary_href(self, repomd: Path) -> str:
        """Find the primary metadata location in repomd.xml.

        Args:
            repomd: Path to repomd.xml

        Returns:
            Repo-relative href of the primary metadata file
        """
        try:
            tree = etree.parse(str(repomd))
        except (OSError, etree.XMLSyntaxError) as e:
            raise IndexParseError(str(repomd), str(e)) from e

        for data in tree.getroot().iterfind("repo:data", NS):
            if data.get("type") != "primary":
                continue
            location = data.find("repo:location", NS)
            if location is not None and location.get("href"):
                return location.get("href")

        raise IndexParseError(str(repomd), "no primary metadata entry")

    def rebuild_index(self) -> None:
        """Run createrepo against the repository root.

        Raises:
            IndexBuildError: If createrepo cannot be started, times out or exits non-zero
        """
        self.root.mkdir(parents=True, exist_ok=True)
        cmd = [self.createrepo] + self.extra_args + [str(self.root)]
        command = " ".join(cmd)
        logger.info(f"Running {command}")

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as e:
            raise IndexBuildError(command, reason=f"{self.createrepo} not found") from e
        except subprocess.TimeoutExpired as e:
            raise IndexBuildError(
                command,
                stdout=_decode(e.stdout),
                stderr=_decode(e.stderr),
                reason=f"timed out after {self.timeout}s",
            ) from e
        except OSError as e:
            raise IndexBuildError(command, reason=str(e)) from e

        stdout = _decode(result.stdout)
        stderr = _decode(result.stderr)
        for line in stdout.splitlines():
            logger.info(line)

        if result.returncode != 0:
            for line in stderr.splitlines():
                logger.error(line)
            raise IndexBuildError(command, result.returncode, stdout, stderr)

        for line in stderr.splitlines():
            logger.warning(line)


def _open_metadata(path: Path) -> IO[bytes]:
    """Open a metadata file, decompressing by extension."""
    if path.suffix == ".gz":
        return gzip.open(path, "rb")
    if path.suffix == ".bz2":
        return bz2.open(path, "rb")
    if path.suffix == ".xz":
        return lzma.open(path, "rb")
    return open(path, "rb")


def _decode(output) -> str:
    if not output:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
