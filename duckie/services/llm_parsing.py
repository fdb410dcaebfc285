# duckie/services/llm_parsing.py

"""
模型输出的"尽力而为"结构化提取。

约定：这里的函数从不抛出解析异常，解析失败一律返回 None，
由调用方替换成各自的降级默认值。
"""

import json
import math
import re

# 模型喜欢用 ```json ... ``` 包裹输出
_CODE_FENCE = re.compile(r'^```[a-zA-Z]*\s*|\s*```$', flags=re.MULTILINE)
# strict=False 允许字符串内出现换行等控制字符
_DECODER = json.JSONDecoder(strict=False)


def clean_model_output(content: str) -> str:
    """去掉 Markdown 代码块标记和首尾空白"""
    if not content:
        return ''
    content = content.strip()
    if content.startswith("```"):
        content = _CODE_FENCE.sub('', content).strip()
    return content


def parse_json_object(content: str):
    """
    把整段回复解析成 JSON 对象。
    返回 dict；回复为空、不是合法 JSON 或顶层不是对象时返回 None。
    """
    cleaned = clean_model_output(content)
    if not cleaned:
        return None
    try:
        # strict=False 允许字符串内出现换行等控制字符
        parsed = json.loads(cleaned, strict=False)
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _iter_json_arrays(content: str):
    """从左到右逐个尝试以 '[' 开头的片段，产出能解析成列表的结果"""
    position = content.find('[')
    while position != -1:
        try:
            value, end = _DECODER.raw_decode(content, position)
        except ValueError:
            position = content.find('[', position + 1)
            continue
        if isinstance(value, list):
            yield value
        # 跳过整个已解析的片段，不再进入它内部的子数组
        position = content.find('[', end)


def extract_json_array(content: str):
    """
    在自由文本中查找第一个 JSON 数组并解析。

    - 纯 JSON 数组：直接返回列表
    - 夹在说明文字中的数组：返回提取出的列表，前后文字里的 [3]、[docs] 之类不影响结果
    - 有多个数组时优先返回第一个包含对象的数组，否则返回第一个数组
    - 找不到可解析的数组：返回 None
    """
    if not content:
        return None
    first = None
    for value in _iter_json_arrays(content):
        if any(isinstance(item, dict) for item in value):
            return value
        if first is None:
            first = value
    return first


def as_string_list(value) -> list:
    """把模型给出的列表字段规整成 list[str]，标量包装成单元素列表"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value if item is not None and str(item).strip()]
    text = str(value).strip()
    return [text] if text else []


def as_non_negative_number(value, default, maximum=None):
    """数值字段：无法转换、NaN 或无穷大时用默认值，负数截断为 0，超过 maximum 截断为 maximum"""
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return default
    if not math.isfinite(number):
        return default
    number = max(number, 0)
    if maximum is not None:
        number = min(number, maximum)
    return number
