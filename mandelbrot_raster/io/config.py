"""
Configuration file loading and presets.

Configuration files are JSON or YAML documents. Render parameters may sit
at the top level or under a 'render' section; a 'presets' section may define
named parameter sets that are merged underneath the file's own values.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

PRESETS: Dict[str, Dict[str, Any]] = {
    'classic': {
        'bounds': (-2.0, 1.0, -1.0, 1.0),
        'width': 800,
        'max_iterations': 1000,
        'palette': 'linear',
        'base_color': (0.0, 0.0, 0.0),
        'target_color': (1.0, 1.0, 1.0),
        'inside_color': (1.0, 1.0, 1.0),
    },
    'rainbow': {
        'bounds': (-2.0, 1.0, -1.0, 1.0),
        'width': 1200,
        'max_iterations': 500,
        'smooth': True,
        'palette': 'hue',
        'hue_cycles': 3.0,
        'color_exponent': 0.4,
    },
    'detail': {
        'bounds': (-0.7485, -0.7435, 0.0985, 0.1015),
        'width': 1600,
        'max_iterations': 3000,
        'smooth': True,
        'palette': 'hue',
        'hue_cycles': 8.0,
        'color_exponent': 0.4,
    },
}


class ConfigManager:
    """Loads render configuration from files and presets."""

    def __init__(self, presets: Optional[Dict[str, Dict[str, Any]]] = None):
        self.presets = dict(PRESETS)
        if presets:
            self.presets.update(presets)

    def load_config(self, path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a JSON or YAML configuration file.

        Args:
            path: Configuration file path (.json, .yaml or .yml)

        Returns:
            Parsed configuration dictionary
        """
        path = Path(path)
        suffix = path.suffix.lower()

        with open(path, 'r', encoding='utf-8') as f:
            if suffix == '.json':
                data = json.load(f)
            elif suffix in ('.yaml', '.yml'):
                data = yaml.safe_load(f) or {}
            else:
                raise ValueError(f"Unsupported config format '{suffix}'. Supported: .json, .yaml, .yml")

        if not isinstance(data, dict):
            raise ValueError(f"Configuration root in {path} must be a mapping")

        logger.info(f"Loaded configuration: {path}")
        return data

    def get_preset(self, name: str) -> Dict[str, Any]:
        """Get a copy of a named preset."""
        if name not in self.presets:
            available = ', '.join(self.presets.keys())
            raise ValueError(f"Unknown preset '{name}'. Available: {available}")
        return dict(self.presets[name])

    def load_render_section(self, path: Optional[Union[str, Path]] = None,
                            preset: Optional[str] = None) -> Dict[str, Any]:
        """
        Resolve render parameters from a preset and/or a file.

        File values take precedence over preset values.
        """
        data: Dict[str, Any] = {}
        file_data: Dict[str, Any] = {}

        if path is not None:
            file_data = self.load_config(path)
            self.presets.update(file_data.pop('presets', None) or {})

        if preset is not None:
            data.update(self.get_preset(preset))

        data.update(file_data.get('render', file_data))
        return data
