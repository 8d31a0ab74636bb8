import os

from flask import Flask, Response, jsonify, redirect, url_for

DEFAULT_MESSAGE = "Message received from the Kubernetes deployment"


def create_app(config=None):
    """Builds the Flask app serving the fixed /message response."""
    app = Flask(__name__)
    app.config.update(
        MESSAGE_TEXT=os.environ.get('MESSAGE_TEXT', DEFAULT_MESSAGE),
        SERVICE_NAME=os.environ.get('SERVICE_NAME', 'message-service'),
    )
    if config:
        app.config.update(config)

    # read once; the payload never changes after startup
    message_text = app.config['MESSAGE_TEXT']
    app.logger.info("Serving /message for %s", app.config['SERVICE_NAME'])

    @app.route('/')
    def index():
        """Redirects to the message endpoint."""
        return redirect(url_for('message'))

    @app.route('/message', methods=['GET'])
    def message():
        """Returns the confirmation string as plain text."""
        return Response(message_text, status=200, mimetype='text/plain')

    @app.route('/health')
    def health_check():
        """Liveness and readiness probe target."""
        return jsonify(status="ok", service=app.config['SERVICE_NAME']), 200

    @app.errorhandler(404)
    def not_found(e):
        """Unknown routes get a JSON error body."""
        return jsonify(error="Not found"), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        """Wrong method on a known route."""
        return jsonify(error="Method not allowed"), 405

    return app


def server_address():
    """Host and port for the development server, from HOST and PORT."""
    return os.environ.get('HOST', '0.0.0.0'), int(os.environ.get('PORT', '8080'))


app = create_app()

if __name__ == "__main__":
    host, port = server_address()
    app.run(host=host, port=port)
