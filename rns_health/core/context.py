"""
Home context — whose home directory the managed installation lives in.

The management tool is often launched with ``sudo``, in which case
``$HOME`` points at /root while Reticulum, NomadNet and MeshChat live
under the invoking user's home.  The real home is resolved ONCE at
startup and every path default is derived from it:

    - CLI:    main.py   → context.set_home(resolve_real_home())
    - Tests:  conftest  → context.set_home(tmp_path)

Design notes:
    - Module-level singleton (not a class), same as any other
      process-wide setting.
    - get_home() lazily resolves on first use when nobody set it.
"""

from __future__ import annotations

import logging
import os
import pwd
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_home: Optional[Path] = None


def resolve_real_home(environ: dict[str, str] | None = None) -> Path:
    """Return the invoking user's home, seeing through ``sudo``.

    ``SUDO_USER`` is ignored when it is ``root`` or looks like a path
    (contains ``/`` or ``..``), or when the passwd entry has no
    existing home directory.
    """
    env = os.environ if environ is None else environ
    sudo_user = env.get("SUDO_USER", "")

    if sudo_user and sudo_user != "root" and "/" not in sudo_user and ".." not in sudo_user:
        try:
            home_dir = Path(pwd.getpwnam(sudo_user).pw_dir)
        except KeyError:
            logger.debug("SUDO_USER %r has no passwd entry", sudo_user)
        else:
            if home_dir.is_dir():
                return home_dir

    return Path(env.get("HOME") or Path.home())


def set_home(home: Path) -> None:
    """Register the managed user's home for the current process."""
    global _home
    _home = home


def get_home() -> Path:
    """Return the managed user's home, resolving it on first use."""
    global _home
    if _home is None:
        _home = resolve_real_home()
    return _home
