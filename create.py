# create.py
from getpass import getpass
from taskboard import create_app
from taskboard.extensions import db
from taskboard.models.user import User


def main():
    app = create_app()
    with app.app_context():
        db.create_all()
        email = input("Admin email: ").strip().lower()
        name = input("Full name: ").strip()
        password = getpass("Password: ")

        # Check existing
        if User.query.filter_by(email=email).first():
            print("User with that email already exists.")
            return

        user = User(name=name, email=email, role="admin")
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        print(f"Admin user {email} created successfully.")

if __name__ == "__main__":
    main()
