"""Handler that reads credentials from the environment."""

import json
import os


def handler(event, _context):
    region = os.environ.get("AWS_REGION", "us-east-1")
    body = json.loads(event.get("body") or "{}")
    return {
        "statusCode": 200,
        "body": json.dumps({"region": region, "keys": sorted(body)}),
    }
