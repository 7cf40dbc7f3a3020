"""Exceptions raised by the nutrimatch engine."""


class NutrimatchError(Exception):
    """Base class for engine errors."""


class DatasetLoadError(NutrimatchError):
    """Raised when the food reference dataset cannot be loaded."""


class FoodNotFoundError(NutrimatchError):
    """Raised when none of the requested foods could be matched."""

    def __init__(self, food_names: list[str]):
        self.food_names = food_names
        names = ", ".join(food_names) if food_names else "(empty input)"
        super().__init__(f"No valid food items could be processed from the input: {names}")
