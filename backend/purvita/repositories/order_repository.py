"""
Order Repository - Data Access Layer for Orders

Handles all database queries for orders and returns Order domain models.
"""
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from purvita.core.exceptions import OrderCreationError
from purvita.domain.order import CartItem, Order, OrderItem
from purvita.repositories.base import BaseRepository

ORDER_COLUMNS = """
    id, user_id, status, total_cents, tax_cents, shipping_cents, discount_cents,
    currency, gateway, gateway_transaction_id, purchase_source, metadata, created_at
"""


class OrderRepository(BaseRepository):
    """
    Repository for Order data access

    All SQL queries for orders are centralized here.
    Returns Order domain models with their items.
    """

    @staticmethod
    def _map_row_to_order(row: dict, items: Optional[List[OrderItem]] = None) -> Order:
        return Order(
            id=str(row['id']),
            user_id=str(row['user_id']),
            status=row['status'],
            total_cents=row['total_cents'],
            tax_cents=row.get('tax_cents') or 0,
            shipping_cents=row.get('shipping_cents') or 0,
            discount_cents=row.get('discount_cents') or 0,
            currency=row.get('currency') or 'USD',
            gateway=row.get('gateway'),
            gateway_transaction_id=row.get('gateway_transaction_id'),
            purchase_source=row.get('purchase_source'),
            metadata=row.get('metadata') or {},
            created_at=row.get('created_at'),
            items=items or []
        )

    @staticmethod
    def _map_row_to_item(row: dict) -> OrderItem:
        return OrderItem(
            id=str(row['id']),
            order_id=str(row['order_id']),
            product_id=str(row['product_id']),
            qty=row['qty'],
            price_cents=row['price_cents']
        )

    def insert_paid_order(
        self,
        user_id: str,
        total_cents: int,
        currency: str,
        gateway: str,
        gateway_transaction_id: Optional[str],
        purchase_source: str,
        metadata: Dict[str, Any],
        tax_cents: int = 0,
        shipping_cents: int = 0,
        discount_cents: int = 0,
        conn=None
    ) -> Tuple[str, bool]:
        """
        Insert an order with status 'paid'

        Concurrent deliveries of the same gateway transaction race on the
        UNIQUE gateway_transaction_id; the loser gets the winner's id back.

        Returns:
            Tuple of (order id, duplicate)
        """
        with self._cursor(conn) as cursor:
            cursor.execute("""
                INSERT INTO orders (
                    user_id, status, total_cents, tax_cents, shipping_cents, discount_cents,
                    currency, gateway, gateway_transaction_id, purchase_source, metadata
                )
                VALUES (%s, 'paid', %s, %s, %s, %s, %s, %s, %s, %s, %s::jsonb)
                ON CONFLICT (gateway_transaction_id) DO NOTHING
                RETURNING id
            """, (
                user_id, total_cents, tax_cents, shipping_cents, discount_cents,
                currency, gateway, gateway_transaction_id, purchase_source,
                json.dumps(metadata, default=str)
            ))
            row = cursor.fetchone()
            if row:
                return str(row['id']), False

            cursor.execute(
                "SELECT id FROM orders WHERE gateway_transaction_id = %s",
                (gateway_transaction_id,)
            )
            existing = cursor.fetchone()
            if not existing:
                raise OrderCreationError(
                    f"Order insert conflicted but no order found for transaction {gateway_transaction_id}"
                )
            return str(existing['id']), True

    def insert_items(self, order_id: str, items: List[CartItem], conn=None) -> int:
        """Insert order items; returns the number of rows written"""
        if not items:
            return 0

        with self._cursor(conn) as cursor:
            for item in items:
                cursor.execute("""
                    INSERT INTO order_items (order_id, product_id, qty, price_cents)
                    VALUES (%s, %s, %s, %s)
                """, (order_id, item.product_id, item.quantity, item.price_cents))
            return len(items)

    def find_id_by_transaction(self, gateway_transaction_id: str) -> Optional[str]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT id FROM orders WHERE gateway_transaction_id = %s",
                (gateway_transaction_id,)
            )
            row = cursor.fetchone()
            return str(row['id']) if row else None

    def find_metadata(self, order_id: str, conn=None) -> Optional[Dict[str, Any]]:
        with self._cursor(conn) as cursor:
            cursor.execute("SELECT metadata FROM orders WHERE id = %s", (order_id,))
            row = cursor.fetchone()
            if not row:
                return None
            return row['metadata'] or {}

    def find_by_id(self, order_id: str, user_id: Optional[str] = None, conn=None) -> Optional[Order]:
        """
        Find order by ID with its items

        Args:
            order_id: Order ID
            user_id: When given, only return the order if it belongs to this user

        Returns:
            Order or None if not found
        """
        with self._cursor(conn) as cursor:
            query = f"SELECT {ORDER_COLUMNS} FROM orders WHERE id = %s"
            params: list = [order_id]
            if user_id:
                query += " AND user_id = %s"
                params.append(user_id)

            cursor.execute(query, params)
            row = cursor.fetchone()
            if not row:
                return None

            cursor.execute("""
                SELECT id, order_id, product_id, qty, price_cents
                FROM order_items
                WHERE order_id = %s
                ORDER BY id
            """, (order_id,))
            items = [self._map_row_to_item(item) for item in cursor.fetchall()]

            return self._map_row_to_order(row, items)

    def find_all(
        self,
        user_id: Optional[str] = None,
        status: Optional[str] = None,
        gateway: Optional[str] = None,
        purchase_source: Optional[str] = None,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> Tuple[List[Order], int]:
        """
        Find orders with filters

        Args:
            user_id: Filter by buyer
            status: Filter by order status
            gateway: Filter by payment gateway
            purchase_source: main_store or affiliate_store
            from_date / to_date: Creation date range
            search: Search in order id or gateway transaction id
            limit: Maximum results to return
            offset: Number of results to skip

        Returns:
            Tuple of (list of orders, total count)
        """
        with self._cursor() as cursor:
            # Build WHERE clause
            conditions = []
            params: list = []

            if user_id:
                conditions.append("user_id = %s")
                params.append(user_id)

            if status:
                conditions.append("status = %s")
                params.append(status)

            if gateway:
                conditions.append("gateway = %s")
                params.append(gateway)

            if purchase_source:
                conditions.append("purchase_source = %s")
                params.append(purchase_source)

            if from_date:
                conditions.append("created_at >= %s")
                params.append(from_date)

            if to_date:
                conditions.append("created_at <= %s")
                params.append(to_date)

            if search:
                conditions.append("(id::text ILIKE %s OR gateway_transaction_id ILIKE %s)")
                search_term = f"%{search}%"
                params.extend([search_term, search_term])

            where_clause = " AND ".join(conditions) if conditions else "1=1"

            # Get total count
            cursor.execute(f"""
                SELECT COUNT(*) as total
                FROM orders
                WHERE {where_clause}
            """, params)
            total = cursor.fetchone()['total']

            cursor.execute(f"""
                SELECT {ORDER_COLUMNS}
                FROM orders
                WHERE {where_clause}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + [limit, offset])

            orders = [self._map_row_to_order(row) for row in cursor.fetchall()]
            return orders, total

    def find_recent_by_user(self, user_id: str, limit: int = 5) -> List[Order]:
        orders, _ = self.find_all(user_id=user_id, limit=limit)
        return orders
