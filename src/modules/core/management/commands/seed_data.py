from __future__ import annotations

import random

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.carts.dtos import AddCartItemDTO
from modules.carts.repositories import CartDjangoRepository
from modules.carts.services import CartService
from modules.core.conf import CommerceConfig
from modules.orders.dtos import AddressDTO, CheckoutDTO
from modules.orders.repositories import OrderDjangoRepository
from modules.orders.views import build_order_service
from modules.payments.gateway import FakeGateway
from modules.payments.services import PaymentService
from modules.products.dtos import CreateProductDTO
from modules.products.models import Product
from modules.products.repositories import ProductDjangoRepository
from modules.products.services import ProductService

SIZES = ["S", "M", "L", "XL"]

CATALOGUE = [
    ("Rainbow Tie-Dye T-Shirt", "T-Shirts", "899", ["Rainbow", "Blue Spiral", "Purple Burst"]),
    ("Sunset Tie-Dye Hoodie", "Hoodies", "1499", ["Sunset Orange", "Pink Sunset"]),
    ("Ocean Wave Tank Top", "Tank Tops", "699", ["Ocean Blue", "Turquoise"]),
    ("Galaxy Sweatshirt", "Sweatshirts", "1299", ["Deep Purple", "Midnight Blue"]),
    ("Pastel Dreams Crop Top", "Crop Tops", "749", ["Pastel Pink", "Lavender"]),
]

SHIPPING = {
    "full_name": "Demo Customer",
    "phone": "9876543210",
    "address_line1": "12 MG Road",
    "city": "Bengaluru",
    "state": "Karnataka",
    "pincode": "560001",
}


def _slugify(name: str) -> str:
    return "-".join(name.lower().split())


class Command(BaseCommand):
    help = "Seed database with a demo catalogue, users and a few orders."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        admin, customer = self._seed_users()
        products = self._seed_products()
        orders_created = self._seed_orders(customer, products)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"admin={admin.email}, "
                f"products={len(products)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self):
        User = get_user_model()
        admin = User.objects.filter(username="admin@example.com").first()
        if admin is None:
            admin = User.objects.create_superuser(
                "admin@example.com", email="admin@example.com", password="admin123"
            )
        customer = User.objects.filter(username="customer@example.com").first()
        if customer is None:
            customer = User.objects.create_user(
                "customer@example.com",
                email="customer@example.com",
                password="customer123",
                first_name="Demo",
            )
        return admin, customer

    def _seed_products(self) -> list[Product]:
        self.stdout.write("Creating products...")
        repository = ProductDjangoRepository()
        service = ProductService(repository=repository)
        products: list[Product] = []
        for index, (name, category, price, colors) in enumerate(CATALOGUE, start=1):
            slug = _slugify(name)
            existing = repository.get_by_slug(slug)
            if existing:
                products.append(existing)
                continue
            inventory = [
                {
                    "color": color,
                    "size": size,
                    "stock": random.randint(0, 25),
                    "sku": f"TD{index:02d}-{c:02d}-{size}",
                }
                for c, color in enumerate(colors, start=1)
                for size in SIZES
            ]
            dto = CreateProductDTO(
                name=name,
                slug=slug,
                description=f"Hand-dyed {category.lower()}.",
                category=category,
                price=price,
                colors=colors,
                sizes=SIZES,
                tags=["tie-dye", category.lower()],
                is_featured=index <= 2,
                inventory=inventory,
            )
            products.append(service.create_product(dto))
        self.stdout.write(self.style.SUCCESS("Creating products... Done!"))
        return products

    def _seed_orders(self, customer, products: list[Product]) -> int:
        """Check out a few carts; every other order is confirmed as cash on delivery."""
        self.stdout.write("Creating orders...")
        config = CommerceConfig.from_settings()
        carts = CartService(CartDjangoRepository(), ProductDjangoRepository(), config)
        orders = build_order_service()
        payments = PaymentService(
            order_repository=OrderDjangoRepository(),
            order_service=orders,
            config=config,
            gateway=FakeGateway(),
        )

        created = 0
        for index in range(4):
            product = random.choice(products)
            variant = max(product.inventory.all(), key=lambda record: record.stock)
            if variant.stock < 1:
                continue
            carts.add_item(
                customer,
                AddCartItemDTO(
                    product_id=product.id,
                    color=variant.color,
                    size=variant.size,
                    quantity=1,
                ),
            )
            order = orders.create_order(
                customer, CheckoutDTO(shipping_address=AddressDTO(**SHIPPING))
            )
            if index % 2 == 0:
                payments.confirm_cod(customer, order.id)
            created += 1
        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return created
