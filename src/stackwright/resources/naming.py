"""Physical naming conventions shared by synthesis, apply and environment injection."""

from __future__ import annotations

import re

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]+")


def physical_name(project: str, stage: str, name: str) -> str:
    """Name a resource carries in the target account (``{project}-{stage}-{name}``)."""
    return f"{project}-{stage}-{name}"


def parameter_path(project: str, stage: str, name: str) -> str:
    return f"/{project}/{stage}/{name}"


def env_token(name: str) -> str:
    """Upper-case *name* and replace every run of non-alphanumerics with ``_``."""
    return _NON_ALNUM.sub("_", name).strip("_").upper()
