# taskboard/models/user.py
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from ..extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "user"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    profile_image_url = db.Column(db.String(500))

    password_hash = db.Column(db.String(255))

    # admin|member
    role = db.Column(db.String(20), nullable=False, default="member", index=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    # --- Auth helpers ---
    def set_password(self, password: str):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        if not self.password_hash:
            return False
        return check_password_hash(self.password_hash, password)

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "profileImageUrl": self.profile_image_url,
        }
