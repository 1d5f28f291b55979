"""Enumerations shared by models, services and schemas."""

from __future__ import annotations

from enum import Enum


class ScanStatus(str, Enum):
    SUCCESS = "success"
    DUPLICATE = "duplicate"
    INVALID = "invalid"
    INACTIVE = "inactive"


class OperatorRole(str, Enum):
    ADMIN = "admin"
    SCANNER = "scanner"
