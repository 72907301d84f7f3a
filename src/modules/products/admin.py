from django.contrib import admin

from modules.products.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("sku", "name", "price", "stock_quantity", "is_active", "featured")
    list_filter = ("is_active", "featured", "gold_purity")
    search_fields = ("sku", "name")
    readonly_fields = ("created_at", "updated_at", "deleted_at")
