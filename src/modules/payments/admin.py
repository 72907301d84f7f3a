from django.contrib import admin

from modules.payments.models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("order", "payment_method", "amount", "status", "expires_at", "paid_at")
    list_filter = ("payment_method", "status")
    search_fields = ("order__order_number", "pix_transaction_id", "provider_payment_id")
    readonly_fields = (
        "pix_code",
        "pix_qr_code",
        "pix_transaction_id",
        "provider_payment_id",
        "created_at",
        "updated_at",
    )
