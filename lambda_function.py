import json
import logging
import traceback
from mangum import Mangum

import config
from main import app

logging.getLogger().setLevel(config.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create handler
handler = Mangum(app, lifespan="off")

def lambda_handler(event, context):
    """AWS Lambda entry point with robust event handling"""
    try:
        logger.debug(f"Received event: {json.dumps(event, default=str)}")

        # Function URLs and some test events omit fields Mangum expects
        event.setdefault('requestContext', {})
        http = event['requestContext'].setdefault('http', {})
        http.setdefault('sourceIp', '127.0.0.1')
        http.setdefault('userAgent', 'api-gateway')
        event.setdefault('headers', {})

        return handler(event, context)

    except Exception as e:
        logger.error(f"Lambda error: {e}\n{traceback.format_exc()}")
        return {
            'statusCode': 500,
            'headers': {'Content-Type': 'application/json'},
            'body': json.dumps({
                'error': str(e),
                'message': 'Internal server error'
            })
        }
