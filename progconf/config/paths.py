"""
Path helpers for the <root>/<program>/<file> configuration layout.
"""

from pathlib import Path
from typing import Tuple, Union

from ..errors import DecompositionError


def build_path(root: Union[str, Path], program_name: str, file_name: str) -> Path:
    """Join root, program directory and file name. No I/O."""
    return Path(root) / program_name / file_name


def split_path(full_path: Union[str, Path]) -> Tuple[Path, str, str]:
    """
    Split a configuration path back into (root, program_name, file_name).

    Args:
        full_path: Path laid out as <root>/<program>/<file>

    Returns:
        Tuple of root directory, program directory name and file name

    Raises:
        DecompositionError: If the path has fewer than three segments
    """
    path = Path(full_path)

    # A leading "/" is its own segment, so "/prog/file" splits with root "/"
    if len(path.parts) < 3:
        raise DecompositionError(full_path)

    root = path.parent.parent
    program_name = path.parent.name
    file_name = path.name

    if not str(root) or not program_name or not file_name:
        raise DecompositionError(full_path)

    return root, program_name, file_name
