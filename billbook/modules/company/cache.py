# billbook/modules/company/cache.py
"""
Read-through cache of the company profile.

Documents print the business name and phones on every render; the profile
is loaded once and kept until invalidate() is called. Saving settings through
update_company_profile() invalidates the cache it is given, so the next
render picks up the new details.
"""
from __future__ import annotations

import logging
import sqlite3

from ...database.repositories.company_repo import CompanyProfile, CompanyRepo

_log = logging.getLogger(__name__)


class CompanyProfileCache:
    def __init__(self, conn: sqlite3.Connection, repo: CompanyRepo | None = None):
        self._repo = repo or CompanyRepo(conn)
        self._profile: CompanyProfile | None = None

    def get(self) -> CompanyProfile:
        if self._profile is None:
            self._profile = self._repo.get()
            _log.debug("Loaded company profile %r", self._profile.business_name)
        return self._profile

    @property
    def business_name(self) -> str:
        return self.get().business_name

    def invalidate(self) -> None:
        self._profile = None


def update_company_profile(
    conn: sqlite3.Connection,
    profile: CompanyProfile,
    cache: CompanyProfileCache | None = None,
) -> None:
    """Validate and save the profile, then drop any cached copy."""
    CompanyRepo(conn).save(profile)
    if cache is not None:
        cache.invalidate()
    _log.info("Company profile saved")
