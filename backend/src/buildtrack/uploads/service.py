"""Staged upload key generation."""

import os
import re
from uuid import uuid4

from ..domain.errors import InvalidInputError

CATEGORY_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def slugify_filename(file_name: str) -> str:
    """Lower-case base name with spaces as dashes and other symbols removed.

    Example:
        >>> slugify_filename("Site Plan (v2).PDF")
        'site-plan-v2'
    """
    base = os.path.splitext(os.path.basename(file_name))[0].lower()
    base = re.sub(r"\s+", "-", base)
    base = re.sub(r"[^\w-]+", "", base)
    return base or "file"


def build_staged_key(staging_prefix: str, file_category: str, file_name: str) -> str:
    """Key a client uploads to: ``{prefix}{category}/{slug}-{uuid}{ext}``.

    Raises:
        InvalidInputError: If the category contains anything but letters, digits, '_' or '-'
    """
    if not file_category or not CATEGORY_PATTERN.match(file_category):
        raise InvalidInputError("A valid file category is required")
    ext = os.path.splitext(file_name)[1]
    return f"{staging_prefix}{file_category}/{slugify_filename(file_name)}-{uuid4()}{ext}"
