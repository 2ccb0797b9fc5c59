from flask import request, session, g, jsonify, current_app
from sqlalchemy.exc import IntegrityError

from storefront import db
from storefront.auth import auth
from storefront.auth.models import User, RoleEnum
from storefront.auth.decorators import login_required
from storefront.errors import InvalidInputError, UnauthenticatedError, UserAlreadyExistsError


@auth.before_app_request
def load_logged_in_user():
    """Fetch the User row for session['user_id'] once per request."""
    user_id = session.get('user_id')
    g.user = db.session.get(User, user_id) if user_id else None


def _payload() -> dict:
    """JSON body, falling back to form data."""
    return request.get_json(silent=True) or request.form.to_dict()


@auth.route('/register', methods=['POST'])
def register():
    """
    Create a Customer or Manager account.
    Admin accounts are only created through `flask create-user`.
    """
    data = _payload()
    errors = {}
    for field in ('username', 'name', 'surname', 'password'):
        if not str(data.get(field, '')).strip():
            errors[field] = f'{field.capitalize()} is required.'

    role_raw = data.get('role', RoleEnum.customer.value)
    if role_raw not in (RoleEnum.customer.value, RoleEnum.manager.value):
        errors['role'] = 'Role must be Customer or Manager.'

    if errors:
        raise InvalidInputError(fields=errors)

    username = data['username'].strip()
    if User.query.filter_by(username=username).first():
        raise UserAlreadyExistsError()

    user = User(
        username=username,
        name=data['name'].strip(),
        surname=data['surname'].strip(),
        role=RoleEnum(role_raw),
    )
    user.set_password(data['password'])
    try:
        db.session.add(user)
        db.session.commit()
    except IntegrityError:
        # Another request claimed the username between our check and the commit.
        db.session.rollback()
        raise UserAlreadyExistsError()

    current_app.logger.info(f"Registered {user.role.value} {user.username}")
    return jsonify(user.to_dict()), 200


@auth.route('/login', methods=['POST'])
def login():
    """Validate credentials and populate the session."""
    data = _payload()
    username = str(data.get('username', '')).strip()
    password = data.get('password', '')

    if not username or not password:
        raise InvalidInputError('Username and password are required.')

    user = User.query.filter_by(username=username).first()
    if user is None or not user.check_password(password):
        # Deliberately vague: don't reveal which field was wrong
        current_app.logger.warning(f"Failed login attempt for username: {username}")
        raise UnauthenticatedError('Invalid username or password.')

    session.clear()
    session['user_id'] = user.id
    session['role']    = user.role.value
    session.permanent  = True             # respect PERMANENT_SESSION_LIFETIME

    current_app.logger.info(f"User {user.username} logged in successfully.")
    return jsonify(user.to_dict()), 200


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    """Clear the session."""
    session.clear()
    return '', 200


@auth.route('/me')
@login_required
def me():
    """Return the logged-in user."""
    return jsonify(g.user.to_dict())
