"""Base classes for local repositories.

Defines the interface the rebuild workflow uses to inspect and regenerate
a repository staged on local disk.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List


class LocalRepository(ABC):
    """Abstract base class for an on-disk repository.

    Each repository implementation must implement methods for:
    - Checking whether an index is present
    - Reading the files the index declares
    - Querying and deleting staged files
    - Regenerating the index from the staged files
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    @property
    @abstractmethod
    def index_name(self) -> str:
        """Return the repo-relative path of the index artifact."""
        pass

    def index_exists(self) -> bool:
        """Check if the index artifact is present."""
        return (self.root / self.index_name).is_file()

    @abstractmethod
    def list_declared_files(self) -> List[str]:
        """List the files the index declares.

        Returns:
            Repo-relative paths, in index order

        Raises:
            IndexParseError: If the index cannot be parsed
        """
        pass

    @abstractmethod
    def rebuild_index(self) -> None:
        """Regenerate the index from the files currently staged.

        Raises:
            IndexBuildError: If the index builder fails
        """
        pass

    def resolve(self, relative_path: str) -> Path:
        """Map a repo-relative path to a staged file path.

        Raises:
            ValueError: If the path escapes the repository root
        """
        candidate = (self.root / relative_path.lstrip("/")).resolve()
        root = self.root.resolve()
        if candidate != root and root not in candidate.parents:
            raise ValueError(f"Path escapes repository root: {relative_path}")
        return candidate

    def file_exists(self, relative_path: str) -> bool:
        """Check if a staged regular file exists."""
        try:
            return self.resolve(relative_path).is_file()
        except ValueError:
            return False

    def delete_file(self, relative_path: str) -> None:
        """Remove a staged file.

        Raises:
            FileNotFoundError: If the file is absent
        """
        self.resolve(relative_path).unlink()
