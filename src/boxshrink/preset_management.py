import json
import os
from pathlib import Path
from typing import List, Optional

from .params import ShrinkParams

PRESETS_DIR = "presets"


def get_presets_dir() -> Path:
    """Presets live in $BOXSHRINK_PRESETS_DIR, or ./presets when unset."""
    return Path(os.environ.get("BOXSHRINK_PRESETS_DIR", PRESETS_DIR))


def get_preset_path(preset_name: str) -> Path:
    """Constructs the full path for a given preset name."""
    return get_presets_dir() / f"{preset_name}.json"


def get_available_presets() -> List[str]:
    """Returns a list of available preset names without the .json extension."""
    presets_dir = get_presets_dir()
    if not presets_dir.exists():
        return []
    return sorted(p.stem for p in presets_dir.glob("*.json") if p.is_file())


def save_preset(preset_name: str, params: ShrinkParams) -> None:
    """Saves shrink parameters to a JSON file."""
    if not preset_name:
        return
    filepath = get_preset_path(preset_name)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        json.dump(params.to_dict(), f, indent=2)


def load_preset(preset_name: str) -> Optional[ShrinkParams]:
    """Loads a preset JSON file, or returns None if there is no such preset."""
    filepath = get_preset_path(preset_name)
    if not filepath.exists():
        return None
    with open(filepath, "r") as f:
        return ShrinkParams.from_dict(json.load(f))
