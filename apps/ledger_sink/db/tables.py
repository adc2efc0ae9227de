"""CREATE TABLE definitions for the order ledger database."""

TABLE_DEFINITIONS = [
    # ----------------------------------------------------------
    # orders
    # ----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS orders (
        order_id                VARCHAR(24) PRIMARY KEY,
        order_number            VARCHAR(50) NOT NULL,
        customer_user_id        VARCHAR(24) NOT NULL,
        customer_name           VARCHAR(200),
        customer_email          VARCHAR(255),
        customer_phone          VARCHAR(50),
        payment_method          VARCHAR(10) NOT NULL,
        payment_status          VARCHAR(20) NOT NULL,
        status                  VARCHAR(30) NOT NULL,
        seller_transfer_status  VARCHAR(20),
        subtotal                BIGINT NOT NULL,
        admin_fee               BIGINT NOT NULL,
        total_amount            BIGINT NOT NULL,
        shipping_recipient_name VARCHAR(200),
        shipping_phone          VARCHAR(50),
        shipping_address        VARCHAR(500),
        shipping_city           VARCHAR(100),
        shipping_postal_code    VARCHAR(20),
        tracking_number         VARCHAR(100),
        courier_whatsapp        VARCHAR(30),
        courier_name            VARCHAR(100),
        created_at              DATETIME(6) NOT NULL,
        updated_at              DATETIME(6) NOT NULL,
        event_id                VARCHAR(36),
        event_timestamp         DATETIME(6),
        UNIQUE KEY uq_order_number (order_number),
        INDEX idx_orders_customer (customer_user_id),
        INDEX idx_orders_status (payment_method, status),
        INDEX idx_orders_created (created_at)
    )
    """,

    # ----------------------------------------------------------
    # order_items
    # ----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS order_items (
        id              INT AUTO_INCREMENT PRIMARY KEY,
        order_id        VARCHAR(24) NOT NULL,
        item_id         VARCHAR(50) NOT NULL,
        product_id      VARCHAR(24) NOT NULL,
        seller_id       VARCHAR(24) NOT NULL,
        store_name      VARCHAR(200),
        product_name    VARCHAR(200),
        variant_name    VARCHAR(100),
        quantity        INT NOT NULL,
        price           BIGINT NOT NULL,
        line_total      BIGINT NOT NULL,
        UNIQUE KEY uq_order_item (order_id, item_id),
        INDEX idx_items_seller (seller_id),
        INDEX idx_items_product (product_id),
        CONSTRAINT fk_items_order FOREIGN KEY (order_id)
            REFERENCES orders(order_id) ON DELETE CASCADE
    )
    """,

    # ----------------------------------------------------------
    # order_status_events (one row per consumed event)
    # ----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS order_status_events (
        event_id        VARCHAR(36) PRIMARY KEY,
        order_id        VARCHAR(24) NOT NULL,
        event_type      VARCHAR(50) NOT NULL,
        status          VARCHAR(30),
        payment_status  VARCHAR(20),
        details_json    JSON,
        event_timestamp DATETIME(6) NOT NULL,
        INDEX idx_status_events_order (order_id, event_timestamp)
    )
    """,

    # ----------------------------------------------------------
    # seller_payouts
    # ----------------------------------------------------------
    """
    CREATE TABLE IF NOT EXISTS seller_payouts (
        id                  INT AUTO_INCREMENT PRIMARY KEY,
        order_id            VARCHAR(24) NOT NULL,
        seller_id           VARCHAR(24) NOT NULL,
        store_name          VARCHAR(200),
        amount              BIGINT NOT NULL,
        admin_fee           BIGINT NOT NULL DEFAULT 0,
        transfer_proof      TEXT,
        bank_name           VARCHAR(100),
        account_number      VARCHAR(50),
        account_name        VARCHAR(200),
        transferred_at      DATETIME(6),
        transferred_by      VARCHAR(24),
        verification_status VARCHAR(20) NOT NULL DEFAULT 'pending',
        verified_at         DATETIME(6),
        UNIQUE KEY uq_order_seller (order_id, seller_id),
        INDEX idx_payouts_seller (seller_id, transferred_at)
    )
    """,
]
