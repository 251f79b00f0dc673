import logging
from dotenv import load_dotenv

load_dotenv()

from api.routes import app, settings

logger = logging.getLogger(__name__)

if __name__ == "__main__":
    # Log startup
    logger.info("Starting Flask server...")
    app.run(debug=True, port=settings.port)
