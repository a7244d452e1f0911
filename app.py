# app.py

import logging
import os

from dotenv import load_dotenv
from flask import Flask
from flask_login import LoginManager

# Load environment variables from .env file first
load_dotenv()

# Module imports after load_dotenv() - E402 is intentional
from config import DevelopmentConfig, ProductionConfig, TestingConfig  # noqa: E402
from config.monitoring import (  # noqa: E402
    DevelopmentMonitoringConfig,
    ProductionMonitoringConfig,
    TestingMonitoringConfig,
)
from config.validation import validate_and_exit  # noqa: E402
from tracker_app.auth import init_auth  # noqa: E402
from tracker_app.extension import init_tracker  # noqa: E402
from tracker_app.routes import init_routes  # noqa: E402
from tracker_app.sync.cli import sync_cli  # noqa: E402
from tracker_app.utils.logging_config import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

app = Flask(__name__)

# Validate environment variables (only in production)
flask_env = os.environ.get("FLASK_ENV", "development")
if flask_env == "production":
    validate_and_exit(flask_env)

# Load configuration based on the environment
if flask_env == "production":
    app.config.from_object(ProductionConfig)
    app.config.from_object(ProductionMonitoringConfig)
elif flask_env == "testing":
    app.config.from_object(TestingConfig)
    app.config.from_object(TestingMonitoringConfig)
else:
    app.config.from_object(DevelopmentConfig)
    app.config.from_object(DevelopmentMonitoringConfig)

app.json.sort_keys = False

# Initialize monitoring and logging systems
setup_logging(app)

login_manager = LoginManager()
login_manager.init_app(app)
init_auth(login_manager)

# Store client, repositories, data service and feed reconciler
init_tracker(app)

# Initialize routes and CLI commands
init_routes(app)
app.cli.add_command(sync_cli)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
