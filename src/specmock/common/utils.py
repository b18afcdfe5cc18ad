"""
Specmock Common Utilities

Contract file discovery and loading shared by the registry and the CLI.
"""

import json
from pathlib import Path
from typing import Any, List

import yaml

from .errors import LoadError


SPEC_EXTENSIONS = ('.yaml', '.yml', '.json')


class SpecLoader:
    """
    Standardized loader for contract files.

    Handles both serializations a contract may come in:
    - YAML (.yaml / .yml)
    - JSON (.json)

    Example:
        loader = SpecLoader("specs/petstore.yaml")
        raw = loader.load()
        print(raw['info']['title'])
    """

    def __init__(self, file_path: str):
        """
        Initialize spec loader.

        Args:
            file_path: Path to a contract file
        """
        self.file_path = Path(file_path)

    def load(self) -> Any:
        """
        Load the raw contract mapping.

        Returns:
            Parsed document (normally a dict)

        Raises:
            LoadError: If the file is missing or not valid YAML/JSON
        """
        if not self.file_path.exists():
            raise LoadError(f"Spec file not found: {self.file_path}", source=str(self.file_path))

        try:
            with open(self.file_path, 'r', encoding='utf-8') as f:
                if self.file_path.suffix.lower() == '.json':
                    return json.load(f)
                return yaml.safe_load(f)
        except (json.JSONDecodeError, yaml.YAMLError, UnicodeDecodeError) as e:
            raise LoadError(f"Failed to parse {self.file_path.name}: {e}", source=str(self.file_path)) from e
        except OSError as e:
            raise LoadError(f"Failed to read {self.file_path.name}: {e}", source=str(self.file_path)) from e


def discover_spec_files(directory: str) -> List[Path]:
    """
    List contract files in a directory, sorted by file name.

    Raises:
        LoadError: If the directory does not exist
    """
    path = Path(directory)
    if not path.is_dir():
        raise LoadError(f"Specs directory not found: {path}", source=str(path))

    return sorted(
        p for p in path.iterdir()
        if p.is_file() and p.suffix.lower() in SPEC_EXTENSIONS
    )
