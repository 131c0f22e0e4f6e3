import pytest
import os
import tempfile

# Point the test configuration at a throwaway SQLite file before config is imported
_db_dir = tempfile.mkdtemp(prefix='quotedesk-tests-')
os.environ['DATABASE_URL'] = f"sqlite:///{os.path.join(_db_dir, 'test.db')}"

from quotedesk import create_app
from quotedesk.database import Base, create_all, drop_all, get_session
from quotedesk.models import (
    Branch, AppUser, UserRole, Header, VehicleModel, FinanceDocument, TermsCondition
)


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    app = create_app('config.TestConfig')
    with app.app_context():
        create_all()
    yield app
    with app.app_context():
        drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Database session inside an app context; every table is emptied afterwards."""
    with app.app_context():
        session = get_session()
        yield session
        session.rollback()
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()


@pytest.fixture(scope='function')
def branch(session):
    """Create the test branch B1."""
    branch = Branch(
        name='B1',
        address='Station Road',
        city='Pune',
        state='Maharashtra',
        pincode='411001',
        phone='9800000001',
        email='b1@dealer.test',
        gst_number='27ABCDE1234F1Z5'
    )
    session.add(branch)
    session.commit()
    return branch


@pytest.fixture(scope='function')
def other_branch(session):
    branch = Branch(
        name='B2',
        address='Market Yard',
        city='Nashik',
        state='Maharashtra',
        pincode='422001',
        phone='9800000002'
    )
    session.add(branch)
    session.commit()
    return branch


@pytest.fixture(scope='function')
def user(session, branch):
    """Sales user assigned to B1."""
    user = AppUser(
        username='sales1',
        full_name='Sales One',
        email='sales1@dealer.test',
        mobile='9811111111',
        role=UserRole.SALES.value,
        branch_id=branch.id
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(session, branch):
    user = AppUser(
        username='admin1',
        full_name='Admin One',
        role=UserRole.ADMIN.value,
        branch_id=branch.id
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def headers(session):
    """Ex-Showroom, RTO Tax and Insurance headers for ICE models."""
    created = {
        'ex_showroom': Header(category_key='Price', type='ICE', header_key='Ex-Showroom', priority=1),
        'rto': Header(category_key='Price', type='ICE', header_key='RTO Tax', priority=2),
        'insurance': Header(category_key='Price', type='ICE', header_key='Insurance', priority=3,
                            meta={'provider': 'Acme General'}),
    }
    session.add_all(created.values())
    session.commit()
    return created


def _make_model(session, name, branch, prices, status='active', model_type='ICE'):
    """
    Create a model with prices given as [(header, value), ...] at branch.

    A (branch, header, value) triple prices another branch.
    """
    model = VehicleModel(model_name=name, type=model_type, status=status)
    session.add(model)
    session.flush()
    for entry in prices:
        if len(entry) == 3:
            price_branch, header, value = entry
        else:
            price_branch = branch
            header, value = entry
        model.add_price(value, header.id if header is not None else None, price_branch.id)
    session.commit()
    return model


@pytest.fixture(scope='function')
def make_model(session):
    """Factory: make_model(name, branch, prices, status='active', model_type='ICE')."""
    def factory(name, branch, prices, status='active', model_type='ICE'):
        return _make_model(session, name, branch, prices, status, model_type)
    return factory


@pytest.fixture(scope='function')
def series_x(session, branch, headers):
    """Models 'X 1' (100000) and 'X 2' (120000), both in series X."""
    x1 = _make_model(session, 'X 1', branch, [
        (headers['ex_showroom'], 100000), (headers['rto'], 8000), (headers['insurance'], 5000)
    ])
    x2 = _make_model(session, 'X 2', branch, [
        (headers['ex_showroom'], 120000), (headers['rto'], 9600), (headers['insurance'], 5500)
    ])
    return {'x1': x1, 'x2': x2}


@pytest.fixture(scope='function')
def catalog_extras(session):
    """Finance documents and terms that every quotation snapshots."""
    session.add_all([
        FinanceDocument(name='PAN Card', is_required=True),
        FinanceDocument(name='Salary Slip', is_required=False, description='Last 3 months'),
        TermsCondition(title='Validity', content='Prices valid for 30 days.', order=2),
        TermsCondition(title='Delivery', content='Subject to stock availability.', order=1),
        TermsCondition(title='Old clause', content='No longer printed.', order=0, is_active=False),
    ])
    session.commit()


@pytest.fixture(scope='function')
def new_customer_payload():
    return {
        'name': 'Customer A',
        'address': '12 Main Street',
        'taluka': 'Haveli',
        'district': 'Pune',
        'mobile1': '9876543210',
    }


@pytest.fixture(scope='function')
def create_quotation(session, user, new_customer_payload):
    """Factory: create_quotation(model_ids, by=user, **fields) -> snapshot view."""
    from quotedesk.services.quotation_service import assemble_quotation, parse_quotation_request

    def factory(model_ids, by=None, **fields):
        payload = {'model_ids': list(model_ids), **fields}
        if 'customer_id' not in fields and 'customer' not in fields:
            payload['customer'] = new_customer_payload
        return assemble_quotation(session, parse_quotation_request(payload), by or user)
    return factory
