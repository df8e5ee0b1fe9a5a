"""Product CSV schema: export headers, column aliases and required columns."""

from typing import Dict, List

# Internal field names in export order
STANDARD_HEADERS = [
    "id",
    "title",
    "description",
    "status",
    "category",
    "subcategory",
    "handle",
    "price",
    "stock",
    "sku",
]

# Human-readable hints appended to exported header cells. Import strips them.
HEADER_HINTS: Dict[str, str] = {
    "id": "変更不要・自動生成",
    "title": "必須",
    "description": "改行可能",
    "status": "active または draft",
    "category": "カテゴリー",
    "subcategory": "カテゴリーに応じたサブカテゴリー",
    "handle": "URL末尾・英数字とハイフンのみ推奨",
    "price": "必須・数値",
    "stock": "数値",
    "sku": "必須・数字の先頭に'をつける",
}

# Header row written on export, e.g. "price（必須・数値）"
EXPORT_HEADERS: List[str] = [
    f"{name}（{HEADER_HINTS[name]}）" if name in HEADER_HINTS else name
    for name in STANDARD_HEADERS
]

REQUIRED_COLUMNS = ["sku", "title", "price"]

# Column name variations accepted on import, matched after hint stripping
# and lowercasing
COLUMN_MAPPINGS: Dict[str, List[str]] = {
    "id": ["id", "product id", "product_id"],
    "sku": ["sku", "sku code", "品番", "商品コード"],
    "title": ["title", "name", "product name", "product_name", "商品名", "タイトル"],
    "description": ["description", "body", "説明", "商品説明"],
    "status": ["status", "state", "ステータス", "公開状態"],
    "category": ["category", "カテゴリー", "カテゴリ"],
    "subcategory": ["subcategory", "sub category", "sub_category", "サブカテゴリー", "サブカテゴリ"],
    "handle": ["handle", "slug", "url handle", "ハンドル"],
    "price": ["price", "unit price", "unit_price", "価格", "販売価格"],
    "stock": ["stock", "inventory", "qty", "quantity", "在庫", "在庫数"],
}

# status cell values meaning "published"; an empty cell also counts
ACTIVE_STATUS_VALUES = {"active", "true", "1", "yes", "公開"}
