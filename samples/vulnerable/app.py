"""Intentionally vulnerable handler used for scanner demos."""

import hashlib
import pickle
import subprocess

import yaml

DEBUG = True
api_key = "demo-api-key-0123456789abcdef"


def handler(event, _context):
    payload = pickle.loads(event["body"])
    settings = yaml.load(event["config"])
    subprocess.run(event["command"], shell=True)
    digest = hashlib.md5(payload).hexdigest()
    return {"digest": digest, "settings": settings}
