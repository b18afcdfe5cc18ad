"""
Specmock Configuration

Dataclass-based configuration for the mock server and the value generator,
loadable from a YAML file:

    specs_dir: specs
    default_spec: petstore.yaml
    port: 8080
    generation:
      default_array_length: 3
      use_examples: true
      date_format: "%Y-%m-%d"
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml


@dataclass
class GenerationConfig:
    """Knobs consumed by the value generator."""

    default_array_length: int = 3
    default_string_length: int = 10
    date_format: str = "%Y-%m-%d"  # strftime format for format: date
    use_examples: bool = True  # Prefer declared examples over generation
    number_range: Tuple[float, float] = (0.0, 1000.0)
    integer_range: Tuple[int, int] = (0, 100)
    max_depth: int = 12  # Recursion cap, independent of cycle detection
    optional_property_probability: float = 1.0  # 1.0 = always include optional properties
    additional_properties_count: int = 2
    faker_locale: str = "en_US"
    seed: Optional[int] = None  # Fixed seed for reproducible output

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GenerationConfig':
        """Create GenerationConfig from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in (data or {}).items() if k in known}
        for key in ('number_range', 'integer_range'):
            if key in values:
                values[key] = tuple(values[key])
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['number_range'] = list(self.number_range)
        data['integer_range'] = list(self.integer_range)
        return data


@dataclass
class MockConfig:
    """Configuration for mock server behavior."""

    # Specification source
    specs_dir: str = "specs"
    default_spec: Optional[str] = None  # File name; first loaded spec when unset
    copy_sample_spec: bool = True  # Seed a missing specs_dir with the Petstore sample

    # Server options
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "info"

    # Admin API
    admin_enabled: bool = True
    admin_prefix: str = "/__admin__"

    # Value generation
    generation: GenerationConfig = field(default_factory=GenerationConfig)

    @classmethod
    def from_yaml(cls, yaml_path: str) -> 'MockConfig':
        """Load configuration from YAML file."""
        path = Path(yaml_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Config file {path} must contain a mapping, got {type(data).__name__}")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MockConfig':
        """Create MockConfig from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)} - {'generation'}
        values = {k: v for k, v in data.items() if k in known}
        return cls(
            generation=GenerationConfig.from_dict(data.get('generation') or {}),
            **values
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['generation'] = self.generation.to_dict()
        return data
