class TenantAdminMixin:
    """
    Enforce tenant isolation in Django admin.
    Uses request.company when the hosting project sets it
    or falls back to request.user.company.
    """

    def _get_request_company(self, request):
        # prefer request.company
        # but fallback to request.user.company if present
        company = getattr(request, "company", None)
        if company is None:
            user = getattr(request, "user", None)
            company = getattr(user, "company", None)
        return company

    def get_queryset(self, request):
        qs = super().get_queryset(request)
        # If superuser, show everything;
        # otherwise restrict to company if available
        if request.user.is_superuser:
            return qs
        company = self._get_request_company(request)
        if company is None:
            # If no company available in request, return none
            return qs.none()
        return qs.filter(company=company)

    def formfield_for_foreignkey(self, db_field, request, **kwargs):
        """
        Restrict foreignkey dropdowns to the current company
        (company, account, fiscal_period, parent...).
        """
        if not request.user.is_superuser:
            company = self._get_request_company(request)
            rel_model = db_field.related_model
            if db_field.name == "company":
                kwargs["queryset"] = (
                    rel_model.objects.filter(pk=company.pk)
                    if company is not None else rel_model.objects.none()
                )
            # if related model has a `company` field,
            # restrict it to request's company
            elif any(f.name == "company" for f in rel_model._meta.get_fields()):
                kwargs["queryset"] = (
                    rel_model.objects.filter(company=company)
                    if company is not None else rel_model.objects.none()
                )
        return super().formfield_for_foreignkey(db_field, request, **kwargs)

    def save_model(self, request, obj, form, change):
        # Ensure object is always owned by company on save (unless superuser)
        if not request.user.is_superuser:
            company = self._get_request_company(request)
            if company is not None:
                obj.company = company
        super().save_model(request, obj, form, change)
