import logging
import os

from dotenv import load_dotenv
from flask import Flask, render_template

from purifier.api import purifier_bp
from purifier.config import ALLOWED_EXTENSIONS, MAX_CONTENT_LENGTH

load_dotenv()


def configure_logging():
    level = os.getenv('LOG_LEVEL', 'INFO').upper()
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
    )


def create_app(config=None):
    configure_logging()

    app = Flask(__name__)
    app.secret_key = os.getenv('SECRET_KEY', 'your-secret-key-here')
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH
    if config:
        app.config.update(config)

    app.register_blueprint(purifier_bp)

    @app.route('/')
    def index():
        return render_template(
            'index.html',
            accept=','.join(f'.{ext}' for ext in ALLOWED_EXTENSIONS),
            extensions=[ext.upper() for ext in ALLOWED_EXTENSIONS],
        )

    @app.errorhandler(413)
    def too_large(_error):
        limit_mb = MAX_CONTENT_LENGTH // (1024 * 1024)
        return {'error': f'File too large. Maximum size is {limit_mb}MB'}, 413

    return app


app = create_app()

if __name__ == '__main__':
    app.run(debug=os.getenv('FLASK_DEBUG', '0') == '1', port=int(os.getenv('PORT', '5000')))
