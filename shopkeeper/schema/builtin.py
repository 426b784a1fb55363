"""
The built-in lists: users, shops and sales channels with their items, and
matches linking shop items to channel items.
"""

from ..access import OWNABLE_ACCESS, USER_ACCESS
from .fields import Checkbox, Float, Password, Relationship, Text
from .lists import ListDefinition, ListRegistry

User = ListDefinition(
    key="User",
    fields=(
        Text("name"),
        Text("email", is_unique=True),
        Password("password", is_required=True),
        Checkbox("isAdmin"),
    ),
    access=USER_ACCESS,
    label_field="name",
)

Shop = ListDefinition(
    key="Shop",
    fields=(
        Text("name"),
        Relationship("user", ref="User"),
        Relationship("shopItems", ref="ShopItem.shop", many=True),
    ),
    access=OWNABLE_ACCESS,
    label_field="name",
)

ShopItem = ListDefinition(
    key="ShopItem",
    fields=(
        Text("pId"),
        Text("vId"),
        Float("quantity"),
        Relationship("shop", ref="Shop.shopItems"),
    ),
    access=OWNABLE_ACCESS,
    label_field="pId",
)

Channel = ListDefinition(
    key="Channel",
    fields=(
        Text("settings"),
        Text("name"),
        Relationship("user", ref="User"),
        Relationship("channelItems", ref="ChannelItem.channel", many=True),
    ),
    access=OWNABLE_ACCESS,
    label_field="name",
)

ChannelItem = ListDefinition(
    key="ChannelItem",
    fields=(
        Text("pId"),
        Text("vId"),
        Float("quantity"),
        Relationship("channel", ref="Channel.channelItems"),
    ),
    access=OWNABLE_ACCESS,
    label_field="pId",
)

Match = ListDefinition(
    key="Match",
    fields=(
        Relationship("input", ref="ShopItem", many=True),
        Relationship("output", ref="ChannelItem", many=True),
        Relationship("user", ref="User"),
    ),
    access=OWNABLE_ACCESS,
    label="Match",
)

BUILTIN_LISTS = (User, Shop, ShopItem, Channel, ChannelItem, Match)


def default_registry() -> ListRegistry:
    """A fresh registry holding the built-in lists."""
    registry = ListRegistry()
    for definition in BUILTIN_LISTS:
        registry.create_list(definition)
    registry.validate_references()
    return registry
