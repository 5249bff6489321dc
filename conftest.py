import os

# Default to an in-memory SQLite database and the offline gateway for tests
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("PAYMENT_GATEWAY", "sandbox")
os.environ.setdefault("RAZORPAY_WEBHOOK_SECRET", "whsec_test")
