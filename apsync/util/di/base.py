from dishka import Provider as DishkaProvider

from apsync.util.di.scope import Scope


class Provider(DishkaProvider):
    """Base for apsync providers. Factories default to the unit-of-work scope."""

    scope = Scope.UOW
