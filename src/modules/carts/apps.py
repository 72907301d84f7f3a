from django.apps import AppConfig


class CartsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.carts"
    label = "carts"
    verbose_name = "Carrinho"
