"""
Runtime configuration for Roux, optionally loaded from a YAML file.

Example `roux.yaml`:

    max_parameters: 64
    warnings: false
    templates:
      error: "{{message}} (line {{line}})"
"""
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

DEFAULT_TEMPLATES: Dict[str, str] = {
    "error": "[line {{line}}] Error{{where}}: {{message}}",
    "warning": "[line {{line}}] Warning{{where}}: {{message}}",
    "runtime_error": "{{message}}\n[line {{line}}]",
}


@dataclass
class RouxConfig:
    """Settings shared by every stage of one runtime."""
    max_parameters: int = 255
    warnings: bool = True
    debug: bool = False
    load_stdlib: bool = True
    templates: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_TEMPLATES))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> 'RouxConfig':
        """Builds a config from a plain mapping, rejecting unknown keys."""
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown Roux config keys: {', '.join(unknown)}")

        templates = dict(DEFAULT_TEMPLATES)
        overrides = data.pop("templates", None) or {}
        if not isinstance(overrides, Mapping):
            raise ValueError("'templates' must be a mapping of template name to text")
        bad = sorted(set(overrides) - set(DEFAULT_TEMPLATES))
        if bad:
            raise ValueError(f"Unknown diagnostic templates: {', '.join(bad)}")
        templates.update(overrides)

        max_parameters = data.get("max_parameters", cls.max_parameters)
        if not isinstance(max_parameters, int) or isinstance(max_parameters, bool) or max_parameters < 0:
            raise ValueError("'max_parameters' must be a non-negative integer")
        return cls(templates=templates, **data)


def load_config(path: str | Path) -> RouxConfig:
    """Reads a YAML config file. An empty file yields the defaults."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is not None and not isinstance(data, Mapping):
        raise ValueError(f"Roux config must be a mapping, got {type(data).__name__}: {p}")
    return RouxConfig.from_mapping(data)
