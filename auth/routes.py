from flask import Blueprint, jsonify, request
from flask_login import current_user, login_user, logout_user, login_required
from sqlalchemy.exc import IntegrityError

from errors import AuthenticationRequired, ValidationError
from extensions import db, login_manager
from models.profile import Profile, ROLE_USER

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@login_manager.user_loader
def load_profile(profile_id: str):
    return db.session.get(Profile, int(profile_id))


def _form() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    return data


@auth_bp.route("/register", methods=["POST"])
def register():
    data = _form()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    first_name = (data.get("first_name") or "").strip()
    last_name = (data.get("last_name") or "").strip()

    if not email or not password:
        raise ValidationError("L'email et le mot de passe sont obligatoires.")

    # check if profile already exists
    existing = Profile.query.filter_by(email=email).first()
    if existing:
        raise ValidationError("Un compte existe déjà avec cet email.")

    # role always starts as "user"; admins are promoted by scripts/seed_admin.py
    profile = Profile(
        email=email,
        full_name=f"{first_name} {last_name}".strip() or None,
        role=ROLE_USER,
    )
    profile.set_password(password)

    db.session.add(profile)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationError("Un compte existe déjà avec cet email.")

    return jsonify({"profile": profile.to_dict()}), 201


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET":
        # where login_required sends anonymous users
        return jsonify({"message": "Veuillez vous connecter", "next": request.args.get("next")})

    data = _form()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    profile = Profile.query.filter_by(email=email).first()

    if profile and profile.check_password(password):
        login_user(profile)
        return jsonify({"profile": profile.to_dict()})

    raise AuthenticationRequired("Email ou mot de passe invalide.")


@auth_bp.route("/logout", methods=["GET", "POST"])
@login_required
def logout():
    logout_user()
    return jsonify({"message": "Déconnecté"})


@auth_bp.route("/me")
def me():
    if not current_user.is_authenticated:
        raise AuthenticationRequired("Non connecté")
    return jsonify({"profile": current_user.to_dict()})
