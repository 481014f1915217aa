import fnmatch
import logging
from pathlib import Path

from cellpipe.errors import CellpipeError

logger = logging.getLogger(__name__)


class Glob:
    """
    A shell-style file name pattern.

    Matching against text is used for the Glob/Text equality shorthand, expansion
    against a directory is used when a glob cell is given where files are expected.
    """

    __slots__ = ("_pattern",)

    def __init__(self, pattern: str):
        self._pattern = pattern

    @property
    def pattern(self) -> str:
        return self._pattern

    def matches(self, text: str) -> bool:
        return fnmatch.fnmatchcase(text, self._pattern)

    def glob_files(self, cwd: Path, out: list[Path]) -> None:
        """
        Append every path matching the pattern to ``out``, in sorted order.

        Relative patterns are expanded against ``cwd``.

        Raises:
            CellpipeError: if the pattern is not acceptable to the file system walker
        """
        pattern_path = Path(self._pattern)
        if pattern_path.is_absolute():
            base = Path(pattern_path.anchor)
            relative = str(pattern_path.relative_to(base))
        else:
            base = cwd
            relative = self._pattern
        try:
            found = sorted(base.glob(relative))
        except (ValueError, NotImplementedError) as e:
            raise CellpipeError(f"Invalid glob pattern {self._pattern}: {e}") from e
        logger.debug(f"Glob {self._pattern!r} in {base} matched {len(found)} paths")
        out.extend(found)

    def __str__(self) -> str:
        return self._pattern

    def __repr__(self) -> str:
        return f"Glob({self._pattern!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Glob):
            return NotImplemented
        return self._pattern == other._pattern

    def __lt__(self, other: "Glob") -> bool:
        return self._pattern < other._pattern

    def __hash__(self) -> int:
        return hash(self._pattern)
