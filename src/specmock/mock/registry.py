"""
Specmock Specification Registry

Holds the loaded contracts and tracks the default one.

The registry state lives in an immutable RegistrySnapshot behind a single
reference. Loading builds a complete new snapshot off to the side and swaps
the reference; readers grab ``registry.snapshot`` once per request and never
lock, so they always see either the old or the new state in full.
"""

import logging
import shutil
import threading
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..common.errors import LoadError, UnknownSpecification
from ..common.utils import SpecLoader, discover_spec_files
from ..schema.model import SpecificationDocument
from ..schema.parser import parse_specification


logger = logging.getLogger("specmock.registry")

SAMPLE_SPEC = Path(__file__).resolve().parent.parent / 'sample_specs' / 'petstore.yaml'

SpecSource = Union[str, Path, Iterable[Union[str, Path]]]


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable registry state."""

    specs: Mapping[str, SpecificationDocument] = field(default_factory=lambda: MappingProxyType({}))
    default_name: Optional[str] = None
    errors: Mapping[str, LoadError] = field(default_factory=lambda: MappingProxyType({}))
    loaded_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def resolve(self, name: Optional[str] = None) -> SpecificationDocument:
        """
        Return the named document, or the default one when no name is given.

        Raises:
            UnknownSpecification: If the name is not loaded or there is no default
        """
        key = name or self.default_name
        if key is None or key not in self.specs:
            raise UnknownSpecification(name, self.specs.keys())
        return self.specs[key]

    def resolve_name(self, name: Optional[str] = None) -> str:
        key = name or self.default_name
        if key is None or key not in self.specs:
            raise UnknownSpecification(name, self.specs.keys())
        return key


@dataclass
class LoadReport:
    """Outcome of one load: which documents loaded, which failed."""

    loaded: List[str] = field(default_factory=list)
    errors: Dict[str, LoadError] = field(default_factory=dict)
    default_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            'loaded': list(self.loaded),
            'default': self.default_name,
            'errors': {name: error.message for name, error in self.errors.items()}
        }


class SpecificationRegistry:
    """
    Registry of loaded contract documents.

    Example:
        registry = SpecificationRegistry(default_spec='petstore.yaml')
        report = registry.load('specs')
        document = registry.resolve()            # default spec
        other = registry.resolve('store.json')   # explicit spec
    """

    def __init__(self, default_spec: Optional[str] = None):
        """
        Initialize registry.

        Args:
            default_spec: File name of the preferred default spec; when it is
                not loaded the first loaded spec becomes the default
        """
        self.default_spec = default_spec
        self._snapshot = RegistrySnapshot()
        self._source: Optional[SpecSource] = None
        self._write_lock = threading.Lock()

    @property
    def snapshot(self) -> RegistrySnapshot:
        """Current immutable state; take it once per request."""
        return self._snapshot

    def load(self, source: SpecSource) -> LoadReport:
        """
        Load every discoverable contract from a directory or list of files.

        Malformed documents are logged and reported but never abort loading
        of the others. The new state replaces the old one atomically.

        Args:
            source: Directory path, or iterable of file paths

        Returns:
            LoadReport

        Raises:
            LoadError: If a source directory does not exist
        """
        files = self._discover(source)
        report = LoadReport()
        specs: Dict[str, SpecificationDocument] = {}

        for path in files:
            name = path.name
            try:
                raw = SpecLoader(str(path)).load()
                document = parse_specification(raw, source=str(path))
            except LoadError as e:
                logger.error(f"Failed to load OpenAPI spec {name}: {e.message}")
                report.errors[name] = e
                continue

            if name in specs:
                logger.warning(f"Duplicate spec name {name}; keeping the first one loaded")
                continue

            specs[name] = document
            report.loaded.append(name)
            logger.info(f"Loaded spec {name} ({document.title} {document.version}) with {len(document.paths)} paths")

        report.default_name = self._pick_default(report.loaded)
        snapshot = RegistrySnapshot(
            specs=MappingProxyType(specs),
            default_name=report.default_name,
            errors=MappingProxyType(dict(report.errors))
        )

        with self._write_lock:
            self._snapshot = snapshot
            self._source = source

        if report.default_name is None:
            logger.warning("No specifications loaded; requests need a valid spec parameter")
        return report

    def reload(self) -> LoadReport:
        """
        Re-read the last loaded source and swap in the result.

        Raises:
            LoadError: If nothing has been loaded yet
        """
        if self._source is None:
            raise LoadError("Nothing to reload: registry was never loaded")
        return self.load(self._source)

    def replace(self, specs: Mapping[str, SpecificationDocument], default_name: Optional[str] = None):
        """Swap in already-parsed documents (used by embedders and tests)."""
        names = list(specs)
        if default_name is not None and default_name in specs:
            chosen = default_name
        else:
            chosen = self._pick_default(names)
        with self._write_lock:
            self._snapshot = RegistrySnapshot(specs=MappingProxyType(dict(specs)), default_name=chosen)

    def _discover(self, source: SpecSource) -> List[Path]:
        if isinstance(source, (str, Path)):
            return discover_spec_files(str(source))
        return [Path(p) for p in source]

    def _pick_default(self, names: List[str]) -> Optional[str]:
        if self.default_spec and self.default_spec in names:
            return self.default_spec
        if self.default_spec:
            logger.warning(f"Configured default spec {self.default_spec} not loaded")
        return names[0] if names else None

    # Read API

    def resolve(self, name: Optional[str] = None) -> SpecificationDocument:
        """
        Return the requested spec, or the default when no name is given.

        Raises:
            UnknownSpecification: If the name does not exist
        """
        return self._snapshot.resolve(name)

    def names(self) -> List[str]:
        return list(self._snapshot.specs.keys())

    @property
    def default_name(self) -> Optional[str]:
        return self._snapshot.default_name

    @property
    def errors(self) -> Mapping[str, LoadError]:
        return self._snapshot.errors

    def describe(self) -> Dict[str, Any]:
        """Spec inventory for the management surface."""
        snapshot = self._snapshot
        return {
            'default': snapshot.default_name,
            'loaded_at': snapshot.loaded_at,
            'specs': {name: doc.summary() for name, doc in snapshot.specs.items()},
            'errors': {name: error.message for name, error in snapshot.errors.items()}
        }

    def endpoints(self, name: str) -> List[Dict[str, Any]]:
        """
        Endpoint inventory of one spec.

        Raises:
            UnknownSpecification: If the name does not exist
        """
        return self._snapshot.resolve(name).endpoints()


def ensure_specs_dir(directory: str, sample_name: str = 'petstore.yaml') -> bool:
    """
    Create the specs directory and seed it with the bundled Petstore sample.

    Does nothing when the directory already exists.

    Returns:
        True if the directory was created
    """
    path = Path(directory)
    if path.exists():
        return False

    path.mkdir(parents=True)
    logger.info(f"Created directory: {path}")

    target = path / sample_name
    if SAMPLE_SPEC.exists():
        shutil.copyfile(SAMPLE_SPEC, target)
        logger.info(f"Copied default spec to: {target}")
    else:
        logger.warning(f"Default spec resource not found: {SAMPLE_SPEC}")
    return True
