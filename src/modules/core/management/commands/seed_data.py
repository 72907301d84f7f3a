from __future__ import annotations

import random
from decimal import Decimal

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.carts.models import CartItem
from modules.orders.dependencies import get_order_service
from modules.orders.dtos import PlaceOrderDTO, ShippingAddressDTO
from modules.payments.constants import PaymentMethod
from modules.products.models import Product

SEED_ADDRESS = {
    "cep": "74000000",
    "logradouro": "Avenida Goiás",
    "numero": "100",
    "bairro": "Setor Central",
    "localidade": "Goiânia",
    "uf": "GO",
    "estado": "Goiás",
    "ddd": "62",
}


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders",
            type=int,
            default=5,
            help="Number of PIX orders to place from seeded carts (needs PIX_KEY).",
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created, customers = self._seed_users()
        products = self._seed_products()
        cart_lines = self._seed_carts(customers, products)
        orders_created = self._seed_orders(customers, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"products={len(products)}, "
                f"cart_lines={cart_lines}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="manager").exists():
            User.objects.create_user("manager", password="manager123", is_staff=True)
            created += 1

        customers = []
        for username in ("ana", "bruno", "carla", "daniel", "helena"):
            user, was_created = User.objects.get_or_create(
                username=username, defaults={"email": f"{username}@example.com"}
            )
            if was_created:
                user.set_password(f"{username}123")
                user.save(update_fields=["password"])
                created += 1
            customers.append(user)
        return created, customers

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        products: list[Product] = []
        catalog = [
            ("ANL-001", "Anel Solitário", "18K", Decimal("2.100"), Decimal("1890.00"), True),
            ("ANL-002", "Aliança Tradicional", "18K", Decimal("4.500"), Decimal("2490.00"), False),
            ("ANL-003", "Anel Meia Aliança", "18K", Decimal("2.800"), Decimal("1590.00"), False),
            ("COR-001", "Corrente Cartier 60cm", "18K", Decimal("6.000"), Decimal("3290.00"), True),
            ("COR-002", "Corrente Veneziana 45cm", "18K", Decimal("3.200"), Decimal("1790.00"), False),
            ("PIN-001", "Pingente Coração", "18K", Decimal("0.900"), Decimal("490.00"), True),
            ("PIN-002", "Pingente Cruz", "18K", Decimal("1.100"), Decimal("590.00"), False),
            ("BRI-001", "Brinco Argola Média", "18K", Decimal("1.800"), Decimal("890.00"), True),
            ("BRI-002", "Brinco Ponto de Luz", "18K", Decimal("0.600"), Decimal("390.00"), False),
            ("PUL-001", "Pulseira Elos Português", "18K", Decimal("5.200"), Decimal("2890.00"), False),
            ("PUL-002", "Pulseira Riviera", "18K", Decimal("4.100"), Decimal("3590.00"), True),
            ("TOR-001", "Tornozeleira Bolinhas", "18K", Decimal("1.500"), Decimal("690.00"), False),
        ]
        for sku, name, purity, weight, price, featured in catalog:
            product, _ = Product.objects.get_or_create(
                sku=sku,
                defaults={
                    "name": name,
                    "description": f"{name} em ouro {purity}.",
                    "gold_purity": purity,
                    "weight": weight,
                    "price": price,
                    "stock_quantity": random.randint(3, 30),
                    "featured": featured,
                },
            )
            products.append(product)
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_carts(self, customers, products: list[Product]) -> int:
        self.stdout.write("Filling carts...")
        lines = 0
        for user in customers:
            for product in random.sample(products, k=min(random.randint(1, 3), len(products))):
                _, created = CartItem.objects.get_or_create(
                    user=user, product=product, defaults={"quantity": random.randint(1, 2)}
                )
                lines += int(created)
        self.stdout.write(self.style.SUCCESS("Filling carts... Done!"))
        return lines

    def _seed_orders(self, customers, limit: int) -> int:
        if not settings.PIX_KEY:
            self.stdout.write(self.style.WARNING("Skipping orders (PIX_KEY not set)."))
            return 0

        self.stdout.write("Placing orders...")
        service = get_order_service()
        placed = 0
        for user in customers[:limit]:
            if not CartItem.objects.filter(user=user).exists():
                continue
            service.place_order(
                PlaceOrderDTO(
                    user_id=user.id,
                    payment_method=PaymentMethod.PIX,
                    shipping_address=ShippingAddressDTO(**SEED_ADDRESS),
                    notes="Seed order",
                )
            )
            placed += 1
        self.stdout.write(self.style.SUCCESS("Placing orders... Done!"))
        return placed
