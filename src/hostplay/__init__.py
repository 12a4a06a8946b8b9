# Copyright (c) 2024 Hostplay Contributors
# MIT License

"""
Hostplay: a small playbook orchestrator for remote hosts.

Runs an ordered list of tasks (shell, copy, search_replace, template)
against every target host of a playbook over SSH, one independent session
per host, and reports a changed/unchanged/failed outcome per task.

Features:
    - asyncssh sessions, one concurrent unit per host
    - register/when conditionals evaluated per host
    - tag filtering
    - idempotent copy, template and search/replace tasks

This package exposes the release metadata; the engine lives in
``hostplay.engine`` and the CLI in ``hostplay.cli``.
"""

from __future__ import annotations

from hostplay.release import __version__, __author__

__all__ = [
    "__version__",
    "__author__",
]
