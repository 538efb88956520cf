# models/base.py
from datetime import datetime
import uuid

import pytz


def current_time_utc():
    return datetime.now(pytz.utc)


def generate_id():
    return str(uuid.uuid4())
