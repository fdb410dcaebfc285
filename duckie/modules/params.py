# duckie/modules/params.py

from flask import request

from duckie.errors import ValidationError


def get_json_body() -> dict:
    """读取 JSON 请求体，缺失或格式错误时返回空字典"""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def int_arg(name: str, default: int, minimum: int = 0) -> int:
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"参数 {name} 必须是整数")
    return max(value, minimum)


def float_arg(name: str, default: float) -> float:
    raw = request.args.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValidationError(f"参数 {name} 必须是数字")


def bool_arg(name: str, default=False):
    """'true' / 'false'（不区分大小写）；参数不存在时返回 default"""
    raw = request.args.get(name)
    if raw is None:
        return default
    return raw.lower() == 'true'
