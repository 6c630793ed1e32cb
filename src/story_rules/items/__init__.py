'''
Items package: catalog entries, lookups, transformations and item use.
'''
from .models import Item, ItemCategory, ItemRarity, ItemTransformation, TransformTrigger
from .registry import ItemCatalog
from .transform import TransformContext, TransformationResolver
from .use import ItemUseResult, use_item

__all__ = [
    'Item',
    'ItemCatalog',
    'ItemCategory',
    'ItemRarity',
    'ItemTransformation',
    'ItemUseResult',
    'TransformContext',
    'TransformTrigger',
    'TransformationResolver',
    'use_item',
]
