# tests/test_company.py
import pytest

from billbook.database.repositories.company_repo import CompanyProfile, CompanyRepo
from billbook.errors import ValidationError
from billbook.modules.company import CompanyProfileCache, update_company_profile


def test_seeded_placeholder_profile(conn):
    assert CompanyRepo(conn).get().business_name == "Your Business Name"


def test_cache_serves_stale_copy_until_invalidated(conn):
    cache = CompanyProfileCache(conn)
    assert cache.business_name == "Your Business Name"

    # saved behind the cache's back
    CompanyRepo(conn).save(CompanyProfile(business_name="Sharma Traders"))
    assert cache.business_name == "Your Business Name"

    cache.invalidate()
    assert cache.business_name == "Sharma Traders"


def test_update_company_profile_invalidates_cache(conn):
    cache = CompanyProfileCache(conn)
    cache.get()
    update_company_profile(
        conn,
        CompanyProfile(
            business_name="  Sharma Traders ",
            phone_number1="9876543210",
            email="",
            pincode="411001",
        ),
        cache,
    )
    profile = cache.get()
    assert profile.business_name == "Sharma Traders"
    assert profile.phone_number1 == "9876543210"
    assert profile.email is None
    assert profile.pincode == "411001"


def test_invalid_profile_is_rejected_and_not_saved(conn):
    cache = CompanyProfileCache(conn)
    bad = CompanyProfile(business_name="", phone_number2="12ab", email="nope", pincode="41A")
    with pytest.raises(ValidationError) as ei:
        update_company_profile(conn, bad, cache)
    assert ei.value.errors == [
        "Business name is required",
        "Phone number 2 has an invalid format",
        "Invalid email format",
        "Pincode must contain digits only",
    ]
    assert cache.business_name == "Your Business Name"
