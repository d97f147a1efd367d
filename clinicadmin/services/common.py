"""Helpers shared by the data-access modules."""
from __future__ import annotations

import logging
from typing import Optional

import bleach
from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

from clinicadmin.models import Clinic

logger = logging.getLogger(__name__)

SYSTEM_USER_NAME = 'System'
LOOKUP_CACHE_PREFIX = 'reception:departments'


def clamp_paging(page: Optional[int], page_size: Optional[int], *, default_size: Optional[int] = None) -> tuple[int, int]:
    """Return a (page, page_size) pair clamped to sane bounds."""
    default_size = default_size or settings.CLINIC_PAGE_SIZE_DEFAULT
    page = page if page and page > 0 else 1
    if not page_size or page_size < 1:
        page_size = default_size
    page_size = min(page_size, settings.CLINIC_PAGE_SIZE_MAX)
    return page, page_size


def paginate(qs, page: Optional[int], page_size: Optional[int], *, default_size: Optional[int] = None):
    page, page_size = clamp_paging(page, page_size, default_size=default_size)
    total = qs.count()
    start = (page - 1) * page_size
    end = start + page_size
    return list(qs[start:end]), total


def acting_user(user):
    """Return ``user`` when it is a saved account, else None."""
    return user if getattr(user, 'pk', None) else None


def user_name(user) -> str:
    if not getattr(user, 'pk', None):
        return SYSTEM_USER_NAME
    return user.get_full_name() or user.username


def stamp_create(obj, user) -> None:
    obj.created_at = timezone.now()
    obj.created_by = acting_user(user)


def clean_text(value: Optional[str]) -> str:
    return bleach.clean((value or '').strip(), strip=True)


def iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def invalidate_lookup_cache() -> None:
    """Drop the cached reception department lists, global and per clinic."""
    cache.delete_many([f'{LOOKUP_CACHE_PREFIX}:all', *[
        f'{LOOKUP_CACHE_PREFIX}:{pk}' for pk in Clinic.objects.values_list('pk', flat=True)
    ]])
