import logging

from flask import Flask
from config import Config
from errors import register_error_handlers
from extensions import db, login_manager
from services.change_feed import ChangeFeed


def create_app(config_object=Config, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.config.update(overrides)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # basicConfig only takes effect on the first call
    logging.getLogger().setLevel(app.config["LOG_LEVEL"])

    # init extensions
    db.init_app(app)
    login_manager.init_app(app)
    # anonymous users are redirected here by @login_required
    login_manager.login_view = "auth.login"
    login_manager.login_message = "Vous devez être connecté pour accéder à cette page"

    # one feed per app; the session hooks publish into it after commit
    app.extensions["change_feed"] = ChangeFeed()

    # import and register blueprints
    from auth.routes import auth_bp
    from routes import main_bp
    from routes.admin import admin_bp
    from routes.functions import functions_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(main_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(functions_bp)

    register_error_handlers(app)

    return app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
