from .cache import CompanyProfileCache, update_company_profile

__all__ = ["CompanyProfileCache", "update_company_profile"]
