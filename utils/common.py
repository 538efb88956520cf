# utils/common.py
import time


def generate_ticket_code(user_id):
    """Human readable ticket id: T<epoch ms>-<first 8 chars of uid>."""
    return f"T{int(time.time() * 1000)}-{str(user_id)[:8]}"
