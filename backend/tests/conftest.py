"""
Pytest fixtures for stockrecon backend tests.

Provides test database setup, CSV builders for both upload layouts, and test client.
"""

import pytest
from stockrecon import create_app
from stockrecon.extensions import db
from stockrecon.models import Product
from stockrecon.services.catalog_service import normalize_product_name


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'LOG_LEVEL': 'DEBUG',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        # The shared catalog cache would still hold ids of wiped products
        app.extensions.pop("stockrecon.catalog", None)

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def warehouses(app):
    return list(app.config["WAREHOUSES"])


@pytest.fixture(scope='function')
def make_product(db_session):
    """Insert a catalog product directly."""
    def _make(name: str) -> Product:
        product = Product(name=name, normalized_name=normalize_product_name(name))
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture(scope='function')
def per_warehouse_csv():
    """
    Build a per-warehouse export: two info/header rows, then
    name;code;theoretical;actual;unit data rows (layout 0,2,3).
    """
    def _build(rows, delimiter=";"):
        lines = [
            delimiter.join(["Leltár export", "", "", "", ""]),
            delimiter.join(["Megnevezés", "Kód", "Elméleti", "Tényleges", "Egység"]),
        ]
        for i, (name, theoretical, actual) in enumerate(rows):
            lines.append(delimiter.join([name, f"K{i:03d}", str(theoretical), str(actual), "db"]))
        return "\n".join(lines) + "\n"
    return _build


@pytest.fixture(scope='function')
def unified_csv(app):
    """
    Build a unified export. rows: [(name, {warehouse: (theoretical, actual)})].
    Warehouses missing from a row's dict get blank cells.
    """
    columns = app.config["UNIFIED_WAREHOUSE_COLUMNS"]
    width = max(max(pair) for pair in columns.values()) + 1

    def _build(rows):
        header = ["Megnevezés"] + [f"c{i}" for i in range(1, width)]
        lines = [";".join(header)]
        for name, values in rows:
            cells = [""] * width
            cells[0] = name
            for wh, (theoretical, actual) in values.items():
                theoretical_col, actual_col = columns[wh]
                cells[theoretical_col] = str(theoretical)
                cells[actual_col] = str(actual)
            lines.append(";".join(cells))
        return "\n".join(lines) + "\n"
    return _build
