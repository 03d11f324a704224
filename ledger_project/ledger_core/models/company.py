from django.db import models
from django.utils.text import slugify


# ---------- Tenant / Company ----------
class Company(models.Model):
    """Tenant / Organization. Every ledger row belongs to exactly one."""

    # Store company’s full display name
    name = models.CharField(max_length=200)

    slug = models.SlugField(  # A URL-friendly identifier
        max_length=80, unique=True  # no two companies can have the same slug
    )

    # Functional currency: journal entries default to it
    default_currency = models.ForeignKey(
        "Currency",
        # don’t allow deleting a currency that a company depends on
        on_delete=models.PROTECT,
        related_name="companies",
    )

    # Store timestamp when the record is first created
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        # derive slug from name if caller left it empty
        if not self.slug:
            base = slugify(self.name) or "company"
            slug, i = base, 1
            while Company.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                slug = f"{base}-{i}"  # "test-co" → "test-co-1" → "test-co-2"
                i += 1
            self.slug = slug
        return super().save(*args, **kwargs)
