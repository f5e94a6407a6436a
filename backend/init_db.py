"""Initialize database with a sample split-tested link."""
import sys
from datetime import timedelta
from sqlalchemy.orm import Session
from linksplit.database import SessionLocal, engine, Base
from linksplit.models import Link
from linksplit.services.lifecycle import TestDraft, utcnow
from linksplit.services.link_tests import LinkTestService
from linksplit.services.variants import VariantSet


def init_database():
    """Create tables and a sample link running a two-way test."""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db: Session = SessionLocal()

    try:
        if db.query(Link).first():
            print("✓ Database already initialized")
            return

        print("\nCreating sample link...")
        draft = TestDraft(
            variants=VariantSet.of([
                ("https://example.com/landing-a", 50),
                ("https://example.com/landing-b", 50),
            ]),
            complete_at=utcnow() + timedelta(weeks=2)
        )
        link = LinkTestService(db).create_link("launch", "https://example.com/landing-a", draft)
        print(f"✓ Created link /r/{link.key} testing {len(link.tests)} URLs")

        print("\n" + "="*50)
        print("✓ Database initialized successfully!")
        print("="*50)
        print("Try it with curl:")
        print(f"  curl -i http://localhost:8000/r/{link.key}")
        print("\n" + "="*50)

    except Exception as e:
        print(f"✗ Error initializing database: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    init_database()
