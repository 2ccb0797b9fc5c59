import os

from storefront import create_app, db

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

# Tables are created on boot; `flask seed-demo` fills an empty database.
with app.app_context():
    db.create_all()

if __name__ == "__main__":
    app.run()
