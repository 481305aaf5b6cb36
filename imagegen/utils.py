import time
import uuid


def gen_object_id() -> str:
    return str(uuid.uuid4())


def get_timestamp_ms() -> int:
    return int(time.time() * 1000)


def make_storage_key(prefix: str, extension: str = "png") -> str:
    """<prefix>/gen-<epoch ms>-<uuid4>.<extension>"""
    return f"{prefix.strip('/')}/gen-{get_timestamp_ms()}-{gen_object_id()}.{extension}"
