# Centralized collection names to prevent drift.

COL_USERS = "users"
COL_USER_NOTIFICATIONS = "notifications"  # users/{user_id}/notifications/{auto_id}
COL_SHOPS = "shops"

# Submissions awaiting moderation
COL_PRODUCT_APPLICATIONS = "product_applications"
COL_RESTAURANT_APPLICATIONS = "restaurantApplications"
COL_SHOP_APPLICATIONS = "shopApplications"
COL_AD_SUBMISSIONS = "ad_submissions"  # reviewed in place, no live record

# Live collections
COL_PRODUCTS = "products"  # individual-owned
COL_SHOP_PRODUCTS = "shop_products"  # organization-owned
COL_RESTAURANTS = "restaurants"

# Secondary index: category_shops/{normalized_segment}
COL_CATEGORY_SHOPS = "category_shops"

COL_ADMIN_ACTIVITY_LOGS = "admin_activity_logs"

# Health probe: fixed, read-only doc path
COL_SYSTEM = "system"
DOC_HEALTHZ = "healthz"
