from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class VariantOption(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    # absolute price for this option; price_delta is added to the base price instead
    price: Optional[float] = Field(default=None, ge=0)
    price_delta: float = Field(default=0, alias='priceDelta')


class VariantGroup(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    selection_type: Literal['single', 'multiple'] = Field(default='single', alias='selectionType')
    options: List[VariantOption] = Field(min_length=1)

    @field_validator('options')
    @classmethod
    def unique_option_names(cls, options):
        names = [o.name.lower() for o in options]
        if len(names) != len(set(names)):
            raise ValueError('option names must be unique within a group')
        return options


def parse_variant_groups(raw):
    """
    Validate a client supplied list of variant groups.

    Returns plain dicts ready for the JSON column; raises pydantic.ValidationError.
    """
    if raw in (None, ''):
        return []
    if not isinstance(raw, list):
        raise ValueError('variant_groups must be a list')
    groups = [VariantGroup.model_validate(group) for group in raw]
    return [group.model_dump() for group in groups]


def size_variants(groups):
    """The options of a group named 'Size' that carry an absolute price"""
    for group in groups or []:
        if group.get('name', '').strip().lower() == 'size':
            return [
                {'name': option['name'], 'price': option['price']}
                for option in group.get('options', [])
                if option.get('price') is not None
            ]
    return []
