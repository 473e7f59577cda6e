"""Infrastructure domain: configuration directory handling.

``projectlint.infrastructure.watcher`` is not re-exported here because it
depends on the linter orchestrator; import it directly::

    from projectlint.infrastructure.watcher import watch
"""

from projectlint.infrastructure.config_dir import (
    find_project_root,
    init_config_dir,
    resolve_config_dir,
    user_config_dir,
)

__all__ = [
    "find_project_root",
    "init_config_dir",
    "resolve_config_dir",
    "user_config_dir",
]
