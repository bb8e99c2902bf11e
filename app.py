"""
WSGI Entry Point

Exposes ``application`` for WSGI servers and runs the Flask development
server when executed directly.

Usage Examples:
    # WSGI deployment
    gunicorn "app:application"

    # Development server
    export FLASK_ENV=development
    python app.py --port 5000
"""

import argparse
import os

from immigration_admin.app import create_app

application = create_app(os.getenv('FLASK_ENV'))


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Immigration admin validation service')
    parser.add_argument('--host', default=os.getenv('HOST', '127.0.0.1'),
                        help='Host to bind (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=int(os.getenv('PORT', '5000')),
                        help='Port to bind (default: 5000)')
    args = parser.parse_args()

    application.run(host=args.host, port=args.port, debug=application.config['DEBUG'])
