"""
Create the admin account and, optionally, a demo vendor with the sample menu.

    python seed.py              # admin only
    python seed.py --demo       # admin + demo vendor + five sample dishes
"""

import argparse

from werkzeug.security import generate_password_hash

from lineup import create_app
from lineup.Database.user_models import User
from lineup.extensions import session_scope
from lineup.utils.catalog.menu_catalog import create_default_items
from lineup.utils.users.accounts import ensure_admin

DEMO_VENDOR_EMAIL = "vendor@khana-lineup.com"


def seed(app, demo=False):
    with app.app_context():
        with session_scope() as session:
            admin = ensure_admin(session, app.config["ADMIN_EMAIL"], app.config["ADMIN_PASSWORD"])
            app.logger.info(f"Admin ready: {admin.email}")

            if not demo:
                return

            vendor = session.query(User).filter(User.email == DEMO_VENDOR_EMAIL).first()
            if vendor is None:
                vendor = User(
                    email=DEMO_VENDOR_EMAIL,
                    password_hash=generate_password_hash("vendor_2026"),
                    name="Demo Vendor",
                    restaurant_name="Demo Kitchen",
                    role="vendor",
                    is_active=True,
                    is_approved=True,
                )
                session.add(vendor)
                session.flush()

            created = create_default_items(session, vendor.id)
            app.logger.info(f"Demo vendor {vendor.id}: {len(created)} menu items created")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the Khana Line-up database")
    parser.add_argument("--demo", action="store_true", help="also create a demo vendor and menu")
    args = parser.parse_args()

    application, _ = create_app()
    seed(application, demo=args.demo)
