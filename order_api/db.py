"""
Async Postgres: customers + orders. PostgresStore is the Store implementation over an asyncpg pool.
Reads go straight to the pool; save_changes() writes staged inserts and dirty orders in a single transaction.
"""
import logging

import asyncpg

from order_api.config import settings
from order_api.models import Customer, CustomerSegment, Order, OrderStatus
from order_api.store import ConcurrencyConflictError, StoreError, UnitOfWork, demo_customers, demo_orders

logger = logging.getLogger(__name__)

_pool: asyncpg.Pool | None = None

ORDER_COLUMNS = """
    o.id, o.customer_id, o.order_date, o.total_amount, o.discount_amount,
    o.order_status, o.delivered_date, o.version
"""


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
            command_timeout=60,
        )
    return _pool


async def close_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


async def init_schema(pool: asyncpg.Pool) -> None:
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS customers (
                id SERIAL PRIMARY KEY,
                name VARCHAR(100) NOT NULL,
                customer_segment VARCHAR(20) NOT NULL
                    CHECK (customer_segment IN ('New', 'Loyal', 'Wholesale', 'Regular'))
            );
        """)
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS orders (
                id SERIAL PRIMARY KEY,
                customer_id INT NOT NULL REFERENCES customers(id),
                order_date TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                total_amount NUMERIC(18, 2) NOT NULL CHECK (total_amount > 0),
                discount_amount NUMERIC(18, 2) NOT NULL DEFAULT 0
                    CHECK (discount_amount >= 0 AND discount_amount <= total_amount),
                order_status VARCHAR(20) NOT NULL DEFAULT 'Pending',
                delivered_date TIMESTAMPTZ,
                version INT NOT NULL DEFAULT 1
            );
        """)
        await conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_orders_customer_id
            ON orders(customer_id);
        """)


async def seed_demo_data(pool: asyncpg.Pool) -> None:
    """Insert the demo customers/orders when the customers table is empty."""
    async with pool.acquire() as conn:
        async with conn.transaction():
            if await conn.fetchval("SELECT COUNT(*) FROM customers;"):
                return
            await conn.executemany(
                "INSERT INTO customers (id, name, customer_segment) VALUES ($1, $2, $3);",
                [(c.id, c.name, c.customer_segment.value) for c in demo_customers()],
            )
            await conn.executemany(
                """
                INSERT INTO orders (id, customer_id, order_date, total_amount, discount_amount, order_status, delivered_date)
                VALUES ($1, $2, $3, $4, $5, $6, $7);
                """,
                [
                    (o.id, o.customer_id, o.order_date, o.total_amount, o.discount_amount,
                     o.order_status.value, o.delivered_date)
                    for o in demo_orders()
                ],
            )
            # Explicit ids above leave the sequences behind.
            await conn.execute("SELECT setval('customers_id_seq', (SELECT MAX(id) FROM customers));")
            await conn.execute("SELECT setval('orders_id_seq', (SELECT MAX(id) FROM orders));")
    logger.info("Seeded Postgres store with demo data")


def _customer_from_row(row: asyncpg.Record, prefix: str = "") -> Customer:
    return Customer(
        id=row[f"{prefix}id"],
        name=row[f"{prefix}name"],
        customer_segment=CustomerSegment(row[f"{prefix}customer_segment"]),
    )


def _order_from_row(row: asyncpg.Record) -> Order:
    return Order(
        id=row["id"],
        customer_id=row["customer_id"],
        order_date=row["order_date"],
        total_amount=row["total_amount"],
        discount_amount=row["discount_amount"],
        order_status=OrderStatus(row["order_status"]),
        delivered_date=row["delivered_date"],
        version=row["version"],
    )


class PostgresStore(UnitOfWork):
    def __init__(self, pool: asyncpg.Pool):
        super().__init__()
        self._pool = pool

    def _order(self, row: asyncpg.Record, include_customer: bool) -> Order:
        order = _order_from_row(row)
        if include_customer:
            order.customer = _customer_from_row(row, prefix="c_")
        return self._track(order)

    def _order_query(self, include_customer: bool, where: str = "") -> str:
        if include_customer:
            return f"""
                SELECT {ORDER_COLUMNS}, c.id AS c_id, c.name AS c_name, c.customer_segment AS c_customer_segment
                FROM orders o JOIN customers c ON c.id = o.customer_id
                {where} ORDER BY o.id;
            """
        return f"SELECT {ORDER_COLUMNS} FROM orders o {where} ORDER BY o.id;"

    async def get_customer_by_id(self, customer_id: int, include_orders: bool = False) -> Customer | None:
        try:
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT id, name, customer_segment FROM customers WHERE id = $1;",
                    customer_id,
                )
                if row is None:
                    return None
                customer = _customer_from_row(row)
                if include_orders:
                    rows = await conn.fetch(
                        self._order_query(False, "WHERE o.customer_id = $1"),
                        customer_id,
                    )
                    customer.orders = [self._order(r, include_customer=False) for r in rows]
                return customer
        except (asyncpg.PostgresError, OSError) as e:
            raise StoreError(str(e)) from e

    async def get_order_by_id(self, order_id: int, include_customer: bool = False) -> Order | None:
        try:
            row = await self._pool.fetchrow(self._order_query(include_customer, "WHERE o.id = $1"), order_id)
        except (asyncpg.PostgresError, OSError) as e:
            raise StoreError(str(e)) from e
        return self._order(row, include_customer) if row else None

    async def get_all_orders(self, include_customer: bool = False) -> list[Order]:
        try:
            rows = await self._pool.fetch(self._order_query(include_customer))
        except (asyncpg.PostgresError, OSError) as e:
            raise StoreError(str(e)) from e
        return [self._order(r, include_customer) for r in rows]

    async def save_changes(self) -> int:
        inserted = list(self._pending)
        updated = self._dirty()
        if not inserted and not updated:
            return 0
        try:
            async with self._pool.acquire() as conn:
                async with conn.transaction():
                    for order in inserted:
                        row = await conn.fetchrow(
                            """
                            INSERT INTO orders (customer_id, order_date, total_amount, discount_amount, order_status, delivered_date)
                            VALUES ($1, $2, $3, $4, $5, $6)
                            RETURNING id, version;
                            """,
                            order.customer_id,
                            order.order_date,
                            order.total_amount,
                            order.discount_amount,
                            order.order_status.value,
                            order.delivered_date,
                        )
                        order.id, order.version = row["id"], row["version"]
                    for order in updated:
                        status = await conn.execute(
                            """
                            UPDATE orders
                            SET order_status = $1, delivered_date = $2, discount_amount = $3, version = version + 1
                            WHERE id = $4 AND version = $5;
                            """,
                            order.order_status.value,
                            order.delivered_date,
                            order.discount_amount,
                            order.id,
                            order.version,
                        )
                        if status == "UPDATE 0":
                            raise ConcurrencyConflictError(
                                f"Order {order.id} was modified or deleted since it was loaded."
                            )
        except (asyncpg.PostgresError, OSError) as e:
            raise StoreError(str(e)) from e

        for order in updated:
            order.version += 1
        self._accept(inserted, updated)
        return len(inserted) + len(updated)
