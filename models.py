import json
import uuid
from datetime import datetime

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash, check_password_hash

db = SQLAlchemy()


def new_profile_id():
    return str(uuid.uuid4())


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(200), nullable=False)
    medical_profile = db.relationship('MedicalProfile', backref='user', uselist=False, cascade='all, delete-orphan')
    medications = db.relationship('Medication', backref='user', lazy=True, cascade='all, delete-orphan')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)


class MedicalProfile(db.Model):
    """Emergency medical data for one user, addressed publicly by its id."""
    __tablename__ = 'medical_profiles'

    id = db.Column(db.String(36), primary_key=True, default=new_profile_id)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, unique=True)
    blood_group = db.Column(db.String(8))
    allergies = db.Column(db.Text)
    chronic_conditions = db.Column(db.Text)
    medications = db.Column(db.Text)
    emergency_contact_name = db.Column(db.String(120), nullable=False)
    emergency_contact_phone = db.Column(db.String(40), nullable=False)
    emergency_contact_relation = db.Column(db.String(80))
    additional_notes = db.Column(db.Text)
    # Cached image reference; the dashboard always re-encodes from the id
    qr_code_url = db.Column(db.String(500))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Optional free-text fields, in the order the summary shows them
    SUMMARY_FIELDS = [
        ('blood_group', 'Blood Group'),
        ('allergies', 'Allergies'),
        ('chronic_conditions', 'Chronic Conditions'),
        ('medications', 'Current Medications'),
        ('additional_notes', 'Additional Notes'),
    ]

    def summary_items(self):
        """Return (label, value) pairs for the optional fields that are filled in."""
        return [(label, getattr(self, field)) for field, label in self.SUMMARY_FIELDS
                if getattr(self, field)]


class Medication(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100))
    frequency = db.Column(db.String(50), default='daily')  # daily, twice_daily, weekly, as_needed
    times = db.Column(db.Text)  # JSON array of HH:MM strings
    notes = db.Column(db.Text)
    active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def get_times(self):
        if not self.times:
            return []
        try:
            return json.loads(self.times)
        except ValueError:
            return []
