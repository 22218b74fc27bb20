"""
Flask HTTP server for health checks
"""
from flask import Flask, Response
import structlog

from orders.db import Database


logger = structlog.get_logger().bind(component="health_http")


def create_health_app(database: Database) -> Flask:
    """
    Create Flask app with health endpoint
    
    Args:
        database: Database whose connectivity decides health
    
    Returns:
        Configured Flask application
    """
    app = Flask(__name__)
    
    @app.route('/healthz', methods=['GET'])
    def healthz():
        """
        Health check - checks if service is alive and PostgreSQL answers
        
        Returns:
            200 if healthy, 503 if unhealthy
        """
        if database.is_healthy():
            return Response("healthy", status=200, mimetype='text/plain')
        
        logger.error("Health check failed: database unreachable")
        return Response("unhealthy: database unreachable", status=503, mimetype='text/plain')
    
    @app.route('/', methods=['GET'])
    def root():
        """Root endpoint"""
        return Response(
            "Orders Service - Use /healthz for health check",
            status=200,
            mimetype='text/plain'
        )
    
    logger.info("Flask health app created")
    return app
