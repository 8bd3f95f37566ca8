import importlib.util
import logging
import sys
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def load_module(script_path: Path, module_name: Optional[str] = None):
    """Import a python file by path and register it in ``sys.modules``."""
    script_path = Path(script_path)
    if module_name is None:
        module_name = script_path.stem
    if module_name in sys.modules:
        return sys.modules[module_name]
    logger.debug(f"Loading module '{module_name}' from {script_path}")
    search_locations = None
    if script_path.name == "__init__.py":
        search_locations = [str(script_path.parent)]
    spec = importlib.util.spec_from_file_location(
        module_name, str(script_path), submodule_search_locations=search_locations
    )
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    spec.loader.exec_module(module)
    return module
