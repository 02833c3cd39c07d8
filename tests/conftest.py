"""
Pytest configuration and fixtures for QRupay tests
"""
import pytest
import sys
import os

# Engines are created when the app module is imported, so point it at an
# in-memory database before that happens
os.environ['DATABASE_URL'] = 'sqlite:///:memory:'
os.environ.pop('PUBLIC_BASE_URL', None)

# Add parent directory to path to import app
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app import app as flask_app, db, User, MedicalProfile, Medication


@pytest.fixture
def app():
    """Create and configure a test Flask application"""
    saved_config = dict(flask_app.config)
    flask_app.config['TESTING'] = True
    flask_app.config['SECRET_KEY'] = 'test-secret-key'
    flask_app.config['PUBLIC_BASE_URL'] = ''

    with flask_app.app_context():
        db.create_all()
        yield flask_app
        db.session.remove()
        db.drop_all()

    # Tests may tweak settings such as QR_CODE_*; don't let them leak
    flask_app.config.clear()
    flask_app.config.update(saved_config)


@pytest.fixture
def client(app):
    """Create a test client for the Flask application"""
    return app.test_client()


@pytest.fixture
def test_user(app):
    """Create a test user in the database"""
    user = User(username='testuser', email='test@example.com')
    user.set_password('testpassword123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def other_user(app):
    user = User(username='otheruser', email='other@example.com')
    user.set_password('otherpassword123')
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def authenticated_client(client, test_user):
    """Create an authenticated test client"""
    client.post('/login', data={
        'username': 'testuser',
        'password': 'testpassword123'
    }, follow_redirects=True)
    return client


@pytest.fixture
def test_profile(app, test_user):
    """Give the test user a complete medical profile with a fixed id"""
    profile = MedicalProfile(
        id='abc123',
        user_id=test_user.id,
        blood_group='O+',
        allergies='Penicillin',
        chronic_conditions='Asthma',
        medications='Salbutamol inhaler',
        emergency_contact_name='Jane Doe',
        emergency_contact_phone='+1-555-0100',
        emergency_contact_relation='Sister',
        additional_notes='Carries an inhaler in the left pocket',
    )
    db.session.add(profile)
    db.session.commit()
    return profile


@pytest.fixture
def test_medication(app, test_user):
    medication = Medication(
        user_id=test_user.id,
        name='Aspirin',
        dosage='500mg',
        frequency='daily',
        times='["08:00", "20:00"]',
    )
    db.session.add(medication)
    db.session.commit()
    return medication
