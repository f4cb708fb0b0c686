from datetime import date
from time import time
from typing import Optional, Callable

import numpy as np
import prettytable as pt
from faker import Faker


def now_ms() -> int:
    """
    Function to get the current time in milliseconds.

    """
    return int(time() * 1000)


def check_property_update(func: Callable) -> Callable:
    """
    Decorator to cache a property until the evolution_id of its owner changes.

    The owner must provide `_properties_evolution_id`, `_properties_cached` and `evolution_id`.

    """
    def wrapper(self, *args, **kwargs):
        self_name = func.__name__
        # Never calculated, or calculated for an older state of the ledger
        if self_name not in self._properties_evolution_id:
            recalculate = True
        elif self._properties_evolution_id[self_name] != self.evolution_id:
            recalculate = True
        else:
            recalculate = False
        if recalculate:
            self._properties_cached[self_name] = func(self, *args, **kwargs)
            self._properties_evolution_id[self_name] = self.evolution_id
        return self._properties_cached[self_name]
    return wrapper


def get_random_name() -> str:
    """
    Function to generate a portfolio name like 'river_stone_etfs'.

    """
    fake = Faker()
    return "_".join(word.lower() for word in fake.words(nb=2)) + "_etfs"


# Display functions -----------------------------------------------------------


def display_percentage(ratio: float) -> str:
    """
    Function to display a gain or loss ratio as a signed percentage, e.g. 0.1296 -> '+12.96%'.

    """
    return f"{ratio:+,.2%}"


def display_count(count: int) -> str:
    return f"{count:,d}"


def display_money(amount: float, currency: Optional[str] = None) -> str:
    """
    Function to display a cash amount rounded to cents, followed by its currency.

    """
    # -0.001 would otherwise read as '-0.00'
    amount = round(amount, 2) + 0.0
    text = f"{amount:,.2f}"
    if currency:
        text += f" {currency}"
    return text


def display_shares(shares: float) -> str:
    """
    Function to display a share quantity.

    Fractional shares keep up to 4 decimals, trailing zeros are dropped: 107.14 -> '107.14', 10.0 -> '10'.

    """
    return np.format_float_positional(np.float64(shares), precision=4, unique=True, trim="-")


def display_date(value: date) -> str:
    """
    Function to display a date as 'Jan 15, 2024'.

    """
    return f"{value:%b} {value.day}, {value.year}"


def display_pretty_table(data: list[list], padding: int = 0, sort: bool = True) -> str:
    """
    Function to render rows as a text table aligned with the report around it.

    The first row holds the headers. Every payload row carries one extra trailing value used to sort the rows
    (descending), which is not displayed. The symbol column is left aligned, the figures right aligned.

    """
    table = pt.PrettyTable()
    table.field_names = data[0]
    payload = [list(row) for row in data[1:]]
    if sort:
        payload.sort(key=lambda row: row[-1], reverse=True)
    table.add_rows([row[:-1] for row in payload])
    table.align = "r"
    table.align[data[0][0]] = "l"
    indent = " " * padding
    return "\n".join(indent + line for line in table.get_string().splitlines())
