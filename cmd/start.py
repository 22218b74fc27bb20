#!/usr/bin/env python3
"""
Orders Service orchestration - starts gRPC server and Flask HTTP health server
"""
import os
import signal
import sys
import threading
from typing import Optional

# Add parent directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from orders.config import load_config
from orders.logging_config import configure_logging
from orders.db import Database
from orders.repository import OrderRepository
from orders.clients.product_client import ProductClient
from orders.services.order_service import OrderService
from orders.grpc.order_server import create_grpc_server
from orders.health_http import create_health_app


# Global instances for graceful shutdown
grpc_server = None
flask_thread: Optional[threading.Thread] = None
database: Optional[Database] = None
product_client: Optional[ProductClient] = None
shutdown_event = threading.Event()
logger = None


def signal_handler(signum, frame):
    """Handle shutdown signals"""
    logger.info("Received shutdown signal", signal=signum)
    shutdown_event.set()


def shutdown():
    """Graceful shutdown of all components"""
    logger.info("Starting graceful shutdown...")
    
    if grpc_server:
        logger.info("Stopping gRPC server...")
        grpc_server.stop(grace=30).wait()
    
    if product_client:
        product_client.close()
    
    if database:
        database.close()
    
    logger.info("Shutdown complete")


def run_flask(app, host: str, port: int):
    """Run Flask app in a background thread"""
    try:
        from werkzeug.serving import run_simple
        run_simple(
            host,
            port,
            app,
            use_reloader=False,
            use_debugger=False,
            threaded=True
        )
    except Exception as e:
        logger.error("Flask server error", error=str(e))


def main():
    """Main entry point"""
    global grpc_server, flask_thread, database, product_client, logger
    
    config = load_config()
    
    logger = configure_logging(config.service_name, config.log_level, config.log_format)
    logger.info("Starting Orders Service", version="1.0.0")
    
    try:
        database = Database.from_config(config)
        if not database.create_tables(config.db_connect_max_retries, config.db_connect_retry_delay):
            logger.error("Could not initialize the database, exiting")
            sys.exit(1)
        
        repository = OrderRepository(database)
        product_client = ProductClient(
            config.product_service_url,
            validate_method=config.product_validate_method,
            default_timeout=config.product_service_timeout
        )
        order_service = OrderService(
            repository,
            product_client,
            enforce_transitions=config.enforce_status_transitions
        )
        logger.info("Order service initialized",
                    enforce_status_transitions=config.enforce_status_transitions)
        
        flask_app = create_health_app(database)
        flask_thread = threading.Thread(
            target=run_flask,
            args=(flask_app, '0.0.0.0', config.http_health_port),
            daemon=True,
            name="FlaskHTTP"
        )
        flask_thread.start()
        logger.info("HTTP health server started", port=config.http_health_port)
        
        grpc_server = create_grpc_server(order_service, config.grpc_port, config.grpc_max_workers)
        grpc_server.start()
        logger.info("gRPC server started", port=config.grpc_port)
        
        signal.signal(signal.SIGTERM, signal_handler)
        signal.signal(signal.SIGINT, signal_handler)
        
        logger.info("Orders service is running",
                    grpc_port=config.grpc_port,
                    http_port=config.http_health_port)
        
        shutdown_event.wait()
        shutdown()
        sys.exit(0)
        
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        shutdown()
        sys.exit(0)
    except Exception as e:
        logger.error("Fatal error", error=str(e), exc_info=True)
        shutdown()
        sys.exit(1)


if __name__ == '__main__':
    main()
