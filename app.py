import io
import json
import logging
import re

from flask import Flask, render_template, request, redirect, url_for, flash, abort, send_file
from flask_login import LoginManager, login_user, logout_user, login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from config import Config
from dashboard import DashboardScreen, DashboardState, UserSession
from models import db, User, MedicalProfile, Medication
from profile_store import ProfileFetchFailed, ProfileFound, fetch_profile_by_user, get_profile
from qr_codes import QRCodeError, emergency_url, encode_png

# Initialize Flask app
app = Flask(__name__)
app.config.from_object(Config)

logging.basicConfig(
    level=app.config['LOG_LEVEL'],
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)

# Initialize extensions
db.init_app(app)
login_manager = LoginManager()
login_manager.init_app(app)
login_manager.login_view = 'login'

PROFILE_FIELDS = [
    'blood_group', 'allergies', 'chronic_conditions', 'medications',
    'emergency_contact_name', 'emergency_contact_phone',
    'emergency_contact_relation', 'additional_notes',
]

BLOOD_GROUPS = ['A+', 'A-', 'B+', 'B-', 'AB+', 'AB-', 'O+', 'O-']

MEDICATION_FREQUENCIES = ['daily', 'twice_daily', 'weekly', 'as_needed']

TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')

# Login manager user loader
@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, int(user_id))

# Helper functions
def current_session():
    """Wrap the signed-in user (if any) as an explicit session object."""
    user = current_user._get_current_object() if current_user.is_authenticated else None
    return UserSession(user, sign_out=logout_user)

def public_origin():
    """Origin for emergency links: configured base URL, else this request's host."""
    return (app.config.get('PUBLIC_BASE_URL') or request.host_url).rstrip('/')

def qr_options():
    return {
        'width': app.config['QR_CODE_WIDTH'],
        'margin': app.config['QR_CODE_MARGIN'],
        'dark': app.config['QR_CODE_DARK'],
        'light': app.config['QR_CODE_LIGHT'],
    }

def read_profile_form(form):
    """Pull profile fields out of a submitted form; blanks become None."""
    values = {}
    for field in PROFILE_FIELDS:
        value = (form.get(field) or '').strip()
        values[field] = value or None
    return values

def parse_times(raw):
    """Split a comma separated list of HH:MM times, dropping anything malformed."""
    times = []
    for part in (raw or '').split(','):
        part = part.strip()
        if TIME_PATTERN.match(part):
            times.append(part)
    return times

# Routes
@app.route('/')
def index():
    return render_template('index.html')

@app.route('/register', methods=['GET', 'POST'])
def register():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))

    if request.method == 'POST':
        username = (request.form.get('username') or '').strip()
        email = (request.form.get('email') or '').strip()
        password = request.form.get('password')
        confirm_password = request.form.get('confirm_password')

        if not username or not email or not password:
            flash('All fields are required', 'error')
            return render_template('register.html')

        if password != confirm_password:
            flash('Passwords do not match', 'error')
            return render_template('register.html')

        if User.query.filter_by(username=username).first():
            flash('Username already exists', 'error')
            return render_template('register.html')

        if User.query.filter_by(email=email).first():
            flash('Email already registered', 'error')
            return render_template('register.html')

        user = User(username=username, email=email)
        user.set_password(password)
        db.session.add(user)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('Error registering user %s', username)
            flash('Registration failed, please try again', 'error')
            return render_template('register.html')
        app.logger.info('Registered user %s (id=%s)', user.username, user.id)

        flash('Registration successful! Please log in.', 'success')
        return redirect(url_for('login'))

    return render_template('register.html')

@app.route('/login', methods=['GET', 'POST'])
def login():
    if current_user.is_authenticated:
        return redirect(url_for('dashboard'))

    if request.method == 'POST':
        username = request.form.get('username')
        password = request.form.get('password')

        user = User.query.filter_by(username=username).first()

        if user and user.check_password(password):
            login_user(user, remember=True)
            app.logger.info('User %s signed in', user.id)
            next_page = request.args.get('next')
            # Only follow relative redirects
            if not next_page or not next_page.startswith('/') or next_page.startswith('//'):
                next_page = url_for('dashboard')
            return redirect(next_page)

        if username:
            app.logger.warning('Failed sign-in attempt for %s***', username[:3])
        flash('Invalid username or password', 'error')

    return render_template('login.html')

@app.route('/logout')
@login_required
def logout():
    user_id = current_user.id
    current_session().sign_out()
    app.logger.info('User %s signed out', user_id)
    flash('You have been logged out', 'info')
    return redirect(url_for('index'))

@app.route('/dashboard')
def dashboard():
    screen = DashboardScreen(current_session(), public_origin(), qr_options=qr_options())
    try:
        screen.mount()
        if screen.state is DashboardState.UNAUTHENTICATED:
            return redirect(url_for(screen.redirect_to, next=request.path))
        return render_template('dashboard.html', screen=screen, DashboardState=DashboardState)
    finally:
        screen.teardown()

# -------------------------------------------------------------------
# Profile create / edit
# -------------------------------------------------------------------
@app.route('/profile/edit', methods=['GET', 'POST'])
@login_required
def profile_edit():
    result = fetch_profile_by_user(current_user.id)
    if isinstance(result, ProfileFetchFailed):
        flash('Failed to load medical profile', 'error')
        return redirect(url_for('dashboard'))
    profile = result.profile if isinstance(result, ProfileFound) else None

    if request.method == 'POST':
        values = read_profile_form(request.form)
        if not values['emergency_contact_name'] or not values['emergency_contact_phone']:
            flash('Emergency contact name and phone are required', 'error')
            return render_template('profile_edit.html', profile=values, blood_groups=BLOOD_GROUPS,
                                   creating=profile is None)

        creating = profile is None
        if creating:
            profile = MedicalProfile(user_id=current_user.id)
            db.session.add(profile)
        for field, value in values.items():
            setattr(profile, field, value)

        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('Error saving medical profile for user %s', current_user.id)
            flash('Failed to save medical profile', 'error')
            return render_template('profile_edit.html', profile=values, blood_groups=BLOOD_GROUPS,
                                   creating=creating)

        app.logger.info('%s medical profile %s', 'Created' if creating else 'Updated', profile.id)
        flash('Medical profile saved', 'success')
        return redirect(url_for('dashboard'))

    form_values = {field: getattr(profile, field) for field in PROFILE_FIELDS} if profile else {}
    return render_template('profile_edit.html', profile=form_values, blood_groups=BLOOD_GROUPS,
                           creating=profile is None)

# -------------------------------------------------------------------
# Public emergency view
# -------------------------------------------------------------------
@app.route('/emergency/<profile_id>')
def emergency_view(profile_id):
    profile = get_profile(profile_id)
    if profile is None:
        abort(404)
    return render_template('emergency.html', profile=profile)

@app.route('/emergency/<profile_id>/qr.png')
def emergency_qr(profile_id):
    profile = get_profile(profile_id)
    if profile is None:
        abort(404)
    try:
        png = encode_png(emergency_url(public_origin(), profile.id), **qr_options())
    except QRCodeError:
        app.logger.exception('Error generating QR code for profile %s', profile.id)
        abort(500)
    return send_file(io.BytesIO(png), mimetype='image/png',
                     as_attachment='download' in request.args,
                     download_name=f'emergency-qr-{profile.id}.png')

# -------------------------------------------------------------------
# Medication reminders
# -------------------------------------------------------------------
@app.route('/medications', methods=['GET', 'POST'])
@login_required
def medications():
    if request.method == 'POST':
        name = (request.form.get('name') or '').strip()
        if not name:
            flash('Medication name is required', 'error')
            return redirect(url_for('medications'))

        frequency = request.form.get('frequency', 'daily')
        if frequency not in MEDICATION_FREQUENCIES:
            frequency = 'daily'

        medication = Medication(
            user_id=current_user.id,
            name=name,
            dosage=(request.form.get('dosage') or '').strip() or None,
            frequency=frequency,
            times=json.dumps(parse_times(request.form.get('times'))),
            notes=(request.form.get('notes') or '').strip() or None,
        )
        db.session.add(medication)
        try:
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            app.logger.exception('Error adding medication for user %s', current_user.id)
            flash('Failed to save medication reminder', 'error')
            return redirect(url_for('medications'))
        flash('Medication reminder added', 'success')
        return redirect(url_for('medications'))

    reminders = Medication.query.filter_by(user_id=current_user.id).order_by(
        Medication.active.desc(), Medication.name).all()
    return render_template('medications.html', medications=reminders, frequencies=MEDICATION_FREQUENCIES)

@app.route('/medications/<int:medication_id>/toggle', methods=['POST'])
@login_required
def toggle_medication(medication_id):
    medication = db.get_or_404(Medication, medication_id)
    if medication.user_id != current_user.id:
        flash('Unauthorized', 'error')
        return redirect(url_for('medications'))
    medication.active = not medication.active
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        app.logger.exception('Error updating medication %s', medication_id)
        flash('Failed to update medication reminder', 'error')
        return redirect(url_for('medications'))
    flash('Reminder resumed' if medication.active else 'Reminder paused', 'info')
    return redirect(url_for('medications'))

@app.route('/medications/<int:medication_id>/delete', methods=['POST'])
@login_required
def delete_medication(medication_id):
    medication = db.get_or_404(Medication, medication_id)
    if medication.user_id != current_user.id:
        flash('Unauthorized', 'error')
        return redirect(url_for('medications'))
    db.session.delete(medication)
    try:
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        app.logger.exception('Error removing medication %s', medication_id)
        flash('Failed to remove medication reminder', 'error')
        return redirect(url_for('medications'))
    flash('Medication removed', 'success')
    return redirect(url_for('medications'))

# Initialize database
def init_db():
    with app.app_context():
        db.create_all()

if __name__ == '__main__':
    init_db()
    app.run(host='0.0.0.0', port=7860, debug=True)
