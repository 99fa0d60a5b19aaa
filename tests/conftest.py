"""
Pytest configuration and shared fixtures for the procurement console test suite.
"""
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from models.catalog import Product
from models.line_item import LineItem, LineItemStatus
from models.purchase import Purchase
from models.purchase_order import PurchaseOrder

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="console_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> "Config":
    """Provide a test configuration with isolated directories."""
    from config import Config

    config = Config()
    # Override paths to use temp directory
    config.config_dir = temp_dir / "config"
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.db_path = temp_dir / "data" / "console.db"
    config.uploads_dir = temp_dir / "data" / "uploads"
    config.suppliers_csv = temp_dir / "data" / "suppliers.csv"
    config.products_csv = temp_dir / "data" / "products.csv"
    config.po_csv = temp_dir / "data" / "purchase_orders.csv"
    config.po_lines_csv = temp_dir / "data" / "purchase_order_lines.csv"
    config.page_size = 10
    config.bcrypt_rounds = 4

    # Ensure data directory exists
    config.suppliers_csv.parent.mkdir(parents=True, exist_ok=True)

    return config


@pytest.fixture
def sample_suppliers_csv(temp_dir: Path) -> Path:
    """Create a sample suppliers CSV file."""
    csv_path = temp_dir / "suppliers.csv"
    content = """id,name,contact,email,phone,address,aliases
SUP-001,Acme Building Supplies Pvt Ltd,Ravi,accounts@acme.in,98765 43210,"12 MG Road, Pune",Acme Supplies|ACME Building
SUP-002,Sharma Hardware,Anil,sales@sharma.in,,Nashik,
SUP-003,Global Cement Traders,,,,,"""
    csv_path.write_text(content, encoding="utf-8")
    return csv_path


@pytest.fixture
def sample_products_csv(temp_dir: Path) -> Path:
    """Create a sample products CSV file."""
    csv_path = temp_dir / "products.csv"
    content = """id,name,sku,purchase_rate,sales_rate,unit_type,current_stock,min_stock_level,category,vendor
P1,Cement 50kg,CEM-50,350,400,Bag,120,20,Cement,Global Cement Traders
P2,TMT Bar 12mm,TMT-12,65,72,Kg,0,100,Steel,Acme Building Supplies Pvt Ltd
P3,River Sand,SND-01,"1,800",2100,Ton,5,10,Aggregates,"""
    csv_path.write_text(content, encoding="utf-8")
    return csv_path


@pytest.fixture
def sample_po_csv(temp_dir: Path) -> Path:
    """Create a sample purchase orders CSV file."""
    csv_path = temp_dir / "purchase_orders.csv"
    content = """ref_num,po_number,vendor,status,order_date,delivery_date,purpose,remarks
DB-101,PO-2024-001,Acme Supplies,approved,2024-01-15,2024-02-15,Site A slab,
DB-102,PO-2024-002,Sharma Hardware,draft,2024-01-20,,,Urgent
DB-103,PO-2024-003,Unknown Traders Co,shipped,2024-02-01,,,"""
    csv_path.write_text(content, encoding="utf-8")
    return csv_path


@pytest.fixture
def sample_po_lines_csv(temp_dir: Path) -> Path:
    """Create a sample PO lines CSV file."""
    csv_path = temp_dir / "purchase_order_lines.csv"
    content = """ref_num,product_id,quantity,unit_price,unit_type
DB-101,P1,10,350,Bag
DB-101,P2,200,,
DB-102,P3,2,1800,Ton
DB-999,P1,1,350,Bag"""
    csv_path.write_text(content, encoding="utf-8")
    return csv_path


@pytest.fixture
def sample_products() -> list[Product]:
    return [
        Product(id="P1", name="Cement 50kg", purchase_rate=350, unit_type="Bag", current_stock=120),
        Product(id="P2", name="TMT Bar 12mm", purchase_rate=65, unit_type="Kg"),
        Product(id="P3", name="River Sand", purchase_rate=1800, unit_type="Ton", current_stock=5,
                min_stock_level=10),
    ]


@pytest.fixture
def sample_purchase_orders() -> list[PurchaseOrder]:
    """Three orders: one open, one locked by a purchase, one deleted."""
    return [
        PurchaseOrder(
            id="po1", ref_num="DB-101", vendor="Acme Building Supplies Pvt Ltd",
            status="approved", attachment="po-101.pdf",
            items=[
                LineItem(product_id="P1", quantity=10, unit_price=350, unit_type="Bag"),
                LineItem(product_id="P2", quantity=200, unit_price=65, unit_type="Kg"),
            ],
        ),
        PurchaseOrder(
            id="po2", ref_num="DB-102", vendor="Sharma Hardware",
            is_purchased_created=True,
            items=[LineItem(product_id="P3", quantity=2, unit_price=1800, unit_type="Ton")],
        ),
        PurchaseOrder(id="po3", ref_num="DB-103", vendor="Global Cement Traders", is_deleted=True),
    ]


@pytest.fixture
def sample_purchase() -> Purchase:
    """A purchase against DB-101 with its cement line cancelled."""
    return Purchase(
        id="pur1",
        ref_num="DB-101",
        receipt_number="PUR-20240201-101500",
        vendor="Acme Building Supplies Pvt Ltd",
        purchase_date="2024-02-01T10:15:00+00:00",
        invoice_file="acme-inv-77.pdf",
        items=[
            LineItem(product_id="P1", product_name="Cement 50kg", quantity=10, unit_price=350,
                     unit_type="Bag", status=LineItemStatus.CANCELLED),
            LineItem(product_id="P2", product_name="TMT Bar 12mm", quantity=200, unit_price=65,
                     unit_type="Kg"),
        ],
        subtotal=13000,
        cancelled_total=3500,
        total=13000,
    )


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from procurement.database import Database
    return Database(test_config.db_path)


@pytest.fixture
def users_file(test_config) -> Path:
    """users.json with one user per role; seed passwords are hashed on first load."""
    users = {"users": [
        {"_id": "u1", "username": "admin", "role": "admin", "name": "Admin", "password": "admin-pw"},
        {"_id": "u2", "username": "manager", "role": "manager", "name": "Manager", "password": "manager-pw"},
        {"_id": "u3", "username": "staff", "role": "staff", "name": "Staff", "password": "staff-pw"},
    ]}
    test_config.users_file.write_text(json.dumps(users), encoding="utf-8")
    return test_config.users_file


@pytest.fixture
def api_client(test_config, users_file, test_db):
    """FastAPI TestClient bound to the isolated config and database."""
    from fastapi.testclient import TestClient

    from dashboard.app import app, get_config, get_db

    app.dependency_overrides[get_config] = lambda: test_config
    app.dependency_overrides[get_db] = lambda: test_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def login(api_client):
    """Return a function that logs in and gives back auth headers."""
    def _login(username: str = "manager", password: str | None = None) -> dict:
        resp = api_client.post(
            "/api/auth/login",
            json={"username": username, "password": password or f"{username}-pw"},
        )
        assert resp.status_code == 200, resp.text
        return {"Authorization": f"Bearer {resp.json()['token']}"}
    return _login


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
    config.addinivalue_line("markers", "slow: Slow tests")
