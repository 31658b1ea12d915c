"""Shared fixtures for joinscope tests."""

import copy

import pytest

from joinscope.metadata import load_schema_dict


def _field(name, data_type="integer", nullable=True):
    return {"name": name, "type": data_type, "nullable": nullable}


SHOP_SCHEMA = {
    "entities": [
        {
            "name": "customers",
            "table": "customers",
            "fields": [_field("id", nullable=False), _field("name", "string"), _field("email", "string")],
            "indexes": [["id"]],
            "associations": [
                {"name": "orders", "kind": "has_many", "related_entity": "orders", "related_key": "customer_id"},
            ],
        },
        {
            "name": "orders",
            "table": "orders",
            "fields": [
                _field("id", nullable=False),
                _field("customer_id", nullable=False),
                _field("total", "decimal"),
                _field("inserted_at", "datetime"),
            ],
            "indexes": [["id"]],
            "associations": [
                {"name": "customer", "kind": "belongs_to", "related_entity": "customers"},
                {"name": "items", "kind": "has_many", "related_entity": "order_items", "related_key": "order_id"},
                {
                    "name": "tags",
                    "kind": "many_to_many",
                    "related_entity": "tags",
                    "junction_entity": "order_tags",
                    "junction_keys": ["order_id", "tag_id"],
                },
            ],
        },
        {
            "name": "order_items",
            "table": "order_items",
            "fields": [_field("id"), _field("order_id"), _field("product_id"), _field("quantity")],
            "indexes": [["id"], ["order_id"], ["product_id"]],
            "associations": [
                {"name": "order", "kind": "belongs_to", "related_entity": "orders"},
                {"name": "product", "kind": "belongs_to", "related_entity": "products"},
            ],
        },
        {
            "name": "products",
            "table": "products",
            "fields": [_field("id"), _field("name", "string"), _field("sku", "string")],
        },
        {
            "name": "tags",
            "fields": [_field("id"), _field("name", "string")],
        },
        {
            "name": "order_tags",
            "fields": [_field("id"), _field("order_id"), _field("tag_id")],
        },
        {
            "name": "categories",
            "fields": [_field("id"), _field("name", "string"), _field("parent_id")],
            "associations": [
                {"name": "parent", "kind": "belongs_to", "related_entity": "categories"},
            ],
        },
    ]
}


@pytest.fixture
def shop_schema_data():
    """Raw introspection export of a small shop schema."""
    return copy.deepcopy(SHOP_SCHEMA)


@pytest.fixture
def shop_graph(shop_schema_data):
    """Schema graph of the shop schema."""
    return load_schema_dict(shop_schema_data)


@pytest.fixture
def hierarchy_graph():
    """One entity per hierarchy encoding."""
    return load_schema_dict({
        "entities": {
            "categories": {
                "fields": [_field("id"), _field("parent_id")],
                "associations": [{"name": "parent", "kind": "belongs_to", "related_entity": "categories"}],
            },
            "regions": {
                "fields": [_field("id"), _field("lft"), _field("rgt"), _field("ancestor_id")],
                "associations": [{"name": "ancestor", "kind": "belongs_to", "related_entity": "regions"}],
            },
            "folders": {
                "fields": [_field("id"), _field("path", "string"), _field("container_id")],
                "associations": [{"name": "container", "kind": "belongs_to", "related_entity": "folders"}],
            },
            "employees": {
                "fields": [_field("id"), _field("manager_id")],
                "associations": [{"name": "manager", "kind": "belongs_to", "related_entity": "employees"}],
            },
        }
    })


@pytest.fixture
def products_joins():
    """A valid parameterized joins configuration."""
    return {
        "products": {
            "parameters": [
                {"name": "category", "type": "string", "required": True},
                {"name": "active", "type": "boolean", "required": False, "default": True},
            ],
            "fields": {
                "name": {"type": "string"},
                "price": {"type": "decimal"},
            },
            "join_condition": "products.category = :category AND products.active = :active",
        },
        "customer": {
            "type": "left",
        },
    }


DOMAIN_SOURCE = '''
DOMAIN = {
    "name": "Orders",
    "source": {"table": "orders"},
    "joins": {
        "products": {
            "parameters": [
                {"name": "category", "type": "string", "required": True},
            ],
            "fields": {"name": {"type": "string"}},
            "join_condition": "products.category = :category",
        },
    },
}
'''


@pytest.fixture
def domain_source():
    """Python domain file content with a literal joins mapping."""
    return DOMAIN_SOURCE
