from django.db import models

# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):          # Add queryset helper
        return self.filter(company=company)  # Apply filter

    def active(self, company):
        return self.filter(
                            company=company,  # enforce tenant scoping
                            is_active=True    # only fetch active records
                        )


# Attach TenantQuerySet to .objects
class TenantManager(models.Manager.from_queryset(TenantQuerySet)):
    pass


# Soft-deleted rows (deleted_at set) are hidden from .alive()
class SoftDeleteQuerySet(TenantQuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def active(self, company):
        return super().active(company).filter(deleted_at__isnull=True)


class SoftDeleteTenantManager(models.Manager.from_queryset(SoftDeleteQuerySet)):
    pass
