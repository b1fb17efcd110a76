"""
Catalog admin configuration.
"""

from django.contrib import admin

from catalog.models import OwnerAccount, Product, Viewer


@admin.register(OwnerAccount)
class OwnerAccountAdmin(admin.ModelAdmin):
    list_display = ["name", "contact_email", "square_merchant_id", "created_at"]
    search_fields = ["name", "contact_email", "square_merchant_id"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """
    Admin configuration for Product.

    State is editable here; it is the only way a draft goes on sale.
    """

    list_display = ["title", "owner", "price_cents", "currency", "state", "starts_at"]
    list_filter = ["state", "currency"]
    search_fields = ["id", "title", "owner__name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-created_at"]


@admin.register(Viewer)
class ViewerAdmin(admin.ModelAdmin):
    list_display = ["email", "phone_e164", "square_customer_id", "created_at"]
    search_fields = ["email", "phone_e164", "square_customer_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
