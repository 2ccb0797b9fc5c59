import enum
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from storefront import db


class RoleEnum(enum.Enum):
    customer = "Customer"
    manager  = "Manager"
    admin    = "Admin"


class User(db.Model):
    """Represents a store user (customer, manager or admin)."""
    __tablename__ = 'users'

    id            = db.Column(db.Integer, primary_key=True)
    username      = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name          = db.Column(db.String(120), nullable=False)
    surname       = db.Column(db.String(120), nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    role          = db.Column(db.Enum(RoleEnum), nullable=False, default=RoleEnum.customer)
    created_at    = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # ── Password helpers ──────────────────────────────────────────
    def set_password(self, plain_password: str) -> None:
        """Hash and store the password. Never stores plain text."""
        self.password_hash = generate_password_hash(plain_password)

    def check_password(self, plain_password: str) -> bool:
        """Return True if the supplied password matches the stored hash."""
        return check_password_hash(self.password_hash, plain_password)

    # ── Convenience ───────────────────────────────────────────────
    @property
    def is_customer(self) -> bool:
        return self.role == RoleEnum.customer

    @property
    def is_manager(self) -> bool:
        return self.role == RoleEnum.manager

    @property
    def is_admin(self) -> bool:
        return self.role == RoleEnum.admin

    def to_dict(self) -> dict:
        return {
            'username': self.username,
            'name':     self.name,
            'surname':  self.surname,
            'role':     self.role.value,
        }

    def __repr__(self) -> str:
        return f"<User {self.username!r} role={self.role.value!r}>"
