"""Data Access Layer for the order ledger tables."""

import json
import logging

from apps.ledger_sink.db.connection import get_database

logger = logging.getLogger(__name__)


class OrderDAL:

    def insert_order(self, order_id, order_number,
                     customer_user_id, customer_name,
                     customer_email, customer_phone,
                     payment_method, payment_status, status,
                     seller_transfer_status,
                     subtotal, admin_fee, total_amount,
                     shipping_recipient_name, shipping_phone,
                     shipping_address, shipping_city,
                     shipping_postal_code,
                     created_at, updated_at,
                     event_id, event_timestamp):
        conn = get_database().get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT INTO orders
                    (order_id, order_number,
                     customer_user_id, customer_name,
                     customer_email, customer_phone,
                     payment_method, payment_status, status,
                     seller_transfer_status,
                     subtotal, admin_fee, total_amount,
                     shipping_recipient_name, shipping_phone,
                     shipping_address, shipping_city,
                     shipping_postal_code,
                     created_at, updated_at,
                     event_id, event_timestamp)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s,
                        %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                ON DUPLICATE KEY UPDATE
                    order_number=VALUES(order_number),
                    customer_name=VALUES(customer_name),
                    subtotal=VALUES(subtotal),
                    admin_fee=VALUES(admin_fee),
                    total_amount=VALUES(total_amount)
            """, (order_id, order_number,
                  customer_user_id, customer_name,
                  customer_email, customer_phone,
                  payment_method, payment_status, status,
                  seller_transfer_status,
                  subtotal, admin_fee, total_amount,
                  shipping_recipient_name, shipping_phone,
                  shipping_address, shipping_city,
                  shipping_postal_code,
                  created_at, updated_at,
                  event_id, event_timestamp))
            cursor.close()
        finally:
            conn.close()

    def insert_order_items(self, order_id, items):
        """Insert order lines; replays leave existing rows untouched.

        Args:
            order_id: The order ID.
            items: List of dicts with item data.
        """
        conn = get_database().get_connection()
        try:
            cursor = conn.cursor()
            for item in items:
                cursor.execute("""
                    INSERT IGNORE INTO order_items
                        (order_id, item_id, product_id, seller_id,
                         store_name, product_name, variant_name,
                         quantity, price, line_total)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """, (
                    order_id,
                    item["item_id"],
                    item["product_id"],
                    item["seller_id"],
                    item.get("store_name"),
                    item.get("product_name"),
                    item.get("variant_name"),
                    item["quantity"],
                    item["price"],
                    item["quantity"] * item["price"],
                ))
            cursor.close()
        finally:
            conn.close()

    def update_order_status(self, order_id, status, payment_status,
                            seller_transfer_status, tracking_number,
                            courier_whatsapp, courier_name, updated_at,
                            event_id, event_timestamp):
        """Apply a status change unless a newer event was already applied."""
        conn = get_database().get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE orders
                SET status = %s,
                    payment_status = %s,
                    seller_transfer_status = %s,
                    tracking_number = COALESCE(%s, tracking_number),
                    courier_whatsapp = COALESCE(%s, courier_whatsapp),
                    courier_name = COALESCE(%s, courier_name),
                    updated_at = COALESCE(%s, updated_at),
                    event_id = %s, event_timestamp = %s
                WHERE order_id = %s
                  AND (event_timestamp IS NULL OR event_timestamp <= %s)
            """, (status, payment_status, seller_transfer_status,
                  tracking_number, courier_whatsapp, courier_name,
                  updated_at, event_id, event_timestamp,
                  order_id, event_timestamp))
            applied = cursor.rowcount
            cursor.close()
        finally:
            conn.close()
        if not applied:
            logger.info(f"[STALE_EVENT] {event_id} for order {order_id} not applied")
        return applied

    def insert_status_event(self, event_id, order_id, event_type,
                            status, payment_status, details,
                            event_timestamp):
        conn = get_database().get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                INSERT IGNORE INTO order_status_events
                    (event_id, order_id, event_type, status,
                     payment_status, details_json, event_timestamp)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
            """, (event_id, order_id, event_type, status,
                  payment_status, json.dumps(details or {}, default=str),
                  event_timestamp))
            cursor.close()
        finally:
            conn.close()

    def upsert_seller_payouts(self, order_id, payouts, transferred_at, transferred_by):
        conn = get_database().get_connection()
        try:
            cursor = conn.cursor()
            for payout in payouts:
                bank = payout.get("bank_info") or {}
                cursor.execute("""
                    INSERT INTO seller_payouts
                        (order_id, seller_id, store_name, amount, admin_fee,
                         transfer_proof, bank_name, account_number,
                         account_name, transferred_at, transferred_by,
                         verification_status)
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                    ON DUPLICATE KEY UPDATE
                        amount=VALUES(amount),
                        admin_fee=VALUES(admin_fee),
                        transfer_proof=VALUES(transfer_proof),
                        transferred_at=VALUES(transferred_at)
                """, (
                    order_id,
                    payout["seller_id"],
                    payout.get("store_name"),
                    payout["amount"],
                    payout.get("admin_fee", 0),
                    payout.get("transfer_proof"),
                    bank.get("bank_name"),
                    bank.get("account_number"),
                    bank.get("account_name"),
                    transferred_at,
                    transferred_by,
                    payout.get("verification_status", "pending"),
                ))
            cursor.close()
        finally:
            conn.close()

    def update_payout_verification(self, order_id, seller_id, verification_status, verified_at):
        conn = get_database().get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("""
                UPDATE seller_payouts
                SET verification_status = %s, verified_at = %s
                WHERE order_id = %s AND seller_id = %s
            """, (verification_status, verified_at, order_id, seller_id))
            cursor.close()
        finally:
            conn.close()
