import pytest
import os
import tempfile
from unittest.mock import patch

# Set test environment variables
os.environ["FLASK_ENV"] = "testing"
os.environ["TESTING"] = "true"
os.environ["TRUSTNET_LOG_JSON"] = "false"


@pytest.fixture
def app():
    """Create and configure a new app instance for each test."""
    db_fd, db_path = tempfile.mkstemp(suffix=".db")
    with patch.dict(os.environ, {
        "DATABASE_URL": f"sqlite:///{db_path}",
    }):
        from trustnet.factory import create_app
        from trustnet.database import db
        app = create_app({"TESTING": True})
        with app.app_context():
            db.create_all()
            yield app
            db.session.remove()
            db.drop_all()
            db.engine.dispose()
    os.close(db_fd)
    os.unlink(db_path)


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def session(app):
    from trustnet.database import db
    return db.session


@pytest.fixture
def org_headers():
    return {"X-Org-ID": "org-1", "X-User-ID": "user-1"}


from prometheus_client import REGISTRY


@pytest.fixture(autouse=True)
def clear_prometheus_registry():
    """Clear the default prometheus registry before each test."""
    collectors = list(REGISTRY._collector_to_names.keys())
    for collector in collectors:
        REGISTRY.unregister(collector)
    yield


@pytest.fixture
def seed_erp(session):
    """
    Insert ERP facts for an organization and commit them.

    The default mix reproduces the reference scenario: 10 purchases (9
    paid) and 20 sales (18 delivered, 16 paid and delivered, 1 refunded).
    """
    from datetime import timedelta
    from trustnet.database import utcnow
    from trustnet.models.erp import Purchase, Sale

    def _seed(organization_id="org-1", days_ago=5):
        when = utcnow() - timedelta(days=days_ago)
        rows = []
        rows += [Purchase(organization_id=organization_id, date=when, payment_status="paid") for _ in range(9)]
        rows.append(Purchase(organization_id=organization_id, date=when, payment_status="pending"))
        rows += [
            Sale(organization_id=organization_id, date=when, payment_status="paid", delivery_status="delivered")
            for _ in range(16)
        ]
        rows += [
            Sale(organization_id=organization_id, date=when, payment_status="pending", delivery_status="delivered")
            for _ in range(2)
        ]
        rows.append(Sale(organization_id=organization_id, date=when, payment_status="refunded",
                         delivery_status="pending"))
        rows.append(Sale(organization_id=organization_id, date=when, payment_status="pending",
                         delivery_status="pending"))
        session.add_all(rows)
        session.commit()
        return rows

    return _seed


@pytest.fixture
def engine(app, session):
    from trustnet.database import db
    from trustnet.services.score_engine import ScoreEngine
    return ScoreEngine.from_config(session, db.engine, app.config)


@pytest.fixture
def consents(app, session):
    from trustnet.services.consent_manager import ConsentManager
    return ConsentManager.from_config(session, app.config)


@pytest.fixture
def lifecycle(app, session):
    from trustnet.services.participant_lifecycle import ParticipantLifecycle
    return ParticipantLifecycle.from_config(session, app.config)
