
import json
from typing import Any

from nico_comment_downloader.schemas import RequestUnit


def toWireObject(unit: RequestUnit) -> dict[str, Any]:
    """
    リクエストの 1 要素を、コメントサーバーが受け付ける {"種別": {...}} 形式の辞書に変換する
    ex: {"ping": {"content": "rs:0"}} / {"thread": {...}} / {"thread_leaves": {...}}

    Args:
        unit (RequestUnit): リクエストの 1 要素

    Returns:
        dict[str, Any]: キーが 1 つだけの辞書
    """

    # 値が None のフィールド (num_res や、使わない方の認証情報) は null にせず丸ごと省く
    return {unit.WIRE_KEY: unit.model_dump(exclude_none=True)}


def encodePayload(sequence: list[RequestUnit]) -> bytes:
    """
    リクエストの列を、コメントサーバーに POST する JSON 配列のバイト列に変換する
    配列内の順序はリクエストの列の順序のまま維持される

    Args:
        sequence (list[RequestUnit]): リクエストの列

    Returns:
        bytes: UTF-8 でエンコードされた JSON 配列
    """

    wire_objects = [toWireObject(unit) for unit in sequence]
    return json.dumps(wire_objects, ensure_ascii=False, separators=(',', ':')).encode('utf-8')
