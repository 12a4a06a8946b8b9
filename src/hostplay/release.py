# Copyright (c) 2024 Hostplay Contributors
# MIT License

"""Hostplay release metadata."""

from __future__ import annotations

__version__ = "0.3.0"
__author__ = "Hostplay Contributors"
