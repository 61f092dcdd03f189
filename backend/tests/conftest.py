import os, sys, pytest
# Ensure the backend directory is on path so 'portal' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from portal import create_app, get_db
from portal.models.base import Base
# Import all model modules to ensure tables are registered before create_all
import portal.models.event  # noqa: F401
import portal.models.comment  # noqa: F401

TEST_CONFIG = {
    'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
    'JWT_SECRET_KEY': 'events-portal-test-secret-0123456789abcdef',
    'EVENTS_REQUIRE_IF_MATCH': False,
    'EVENTS_ENFORCE_BRANCH_SCOPE': False,
}


def build_app(**overrides):
    app = create_app({**TEST_CONFIG, **overrides})
    # Fresh in-memory database per app
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    return app


@pytest.fixture()
def app_instance():
    app = build_app()
    yield app
    with app.app_context():
        Base.metadata.drop_all(get_db().get_bind())


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_factory():
    """Build an app with config overrides (feature flags); replaces the default one."""
    built = []

    def _make(**overrides):
        app = build_app(**overrides)
        built.append(app)
        return app
    yield _make
    for app in built:
        with app.app_context():
            Base.metadata.drop_all(get_db().get_bind())
