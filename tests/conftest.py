import copy

import pytest

from economics import solve_nash
from models import NegotiationParams


class FakeTable:
    """In-memory stand-in for the DynamoDB sessions table."""

    def __init__(self):
        self.items = {}

    def put_item(self, Item):
        self.items[Item['session_id']] = copy.deepcopy(Item)

    def get_item(self, Key):
        item = self.items.get(Key['session_id'])
        if item is None:
            return {}
        return {'Item': copy.deepcopy(item)}


@pytest.fixture
def params():
    return NegotiationParams(production_cost=3, retail_price=10, demand_min=0, demand_max=100)


@pytest.fixture
def nash(params):
    return solve_nash(params)


@pytest.fixture
def table():
    return FakeTable()
