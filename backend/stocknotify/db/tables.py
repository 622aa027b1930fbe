"""
Single source of truth for database tables that exist after migrations.

Use these names when writing raw SQL (e.g. TRUNCATE).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "users",
    "products",
    "inventory",
    "product_subscriptions",
    "delivery_logs",
    "notification_preferences",
    "push_tokens",
    "in_app_notifications",
)

# Tables cleared when resetting notification state (TRUNCATE). Order matters for FK.
NOTIFICATION_TABLE_NAMES = (
    "delivery_logs",
    "in_app_notifications",
    "product_subscriptions",
)
