from django.contrib import admin

from modules.carts.models import CartItem


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("user", "product", "quantity", "created_at")
    search_fields = ("user__username", "product__sku")
    raw_id_fields = ("user", "product")
