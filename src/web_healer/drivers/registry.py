"""
Driver Registry - named lookup of driver bindings.

Bindings are registered by name; heavy ones register a factory so their
library is only imported when actually requested.

Example:
    >>> from web_healer.drivers import DriverRegistry
    >>> driver_class = DriverRegistry.get_driver("playwright")
    >>> driver = driver_class(page)
"""

from typing import Callable, Dict, List, Type

from web_healer.exceptions import DriverError
from web_healer.interfaces.driver import IDriverAdapter


class DriverRegistry:
    """
    Central registry for driver bindings.

    Components are registered by name and can be retrieved for instantiation,
    so new bindings can be added without modifying core code.
    """

    _drivers: Dict[str, Type[IDriverAdapter]] = {}
    _driver_factories: Dict[str, Callable[[], Type[IDriverAdapter]]] = {}

    @classmethod
    def register_driver(cls, name: str) -> Callable[[Type[IDriverAdapter]], Type[IDriverAdapter]]:
        """
        Decorator to register a driver implementation.

        Args:
            name: Unique name for the driver (e.g., 'playwright', 'selenium')

        Returns:
            Decorator function
        """
        def decorator(driver_class: Type[IDriverAdapter]) -> Type[IDriverAdapter]:
            if name in cls._drivers:
                raise ValueError(f"Driver '{name}' is already registered")
            cls._drivers[name] = driver_class
            return driver_class
        return decorator

    @classmethod
    def register_driver_factory(
        cls,
        name: str,
        factory: Callable[[], Type[IDriverAdapter]],
    ) -> None:
        """
        Register a factory function for lazy-loading a driver.

        Useful for avoiding import overhead when the driver might not be used.
        """
        cls._driver_factories[name] = factory

    @classmethod
    def get_driver(cls, name: str) -> Type[IDriverAdapter]:
        """
        Get a registered driver class by name.

        Args:
            name: The registered name of the driver

        Returns:
            The driver class

        Raises:
            DriverError: If the driver is not registered or its library
                cannot be imported
        """
        if name in cls._drivers:
            return cls._drivers[name]

        if name in cls._driver_factories:
            try:
                driver_class = cls._driver_factories[name]()
            except ImportError as e:
                raise DriverError(
                    f"Driver '{name}' is unavailable: {e}",
                    {"hint": f"pip install 'web-healer[{name}]'"},
                ) from e
            cls._drivers[name] = driver_class
            return driver_class

        available = list(cls._drivers.keys()) + list(cls._driver_factories.keys())
        raise DriverError(
            f"Unknown driver: '{name}'. Available drivers: {available}"
        )

    @classmethod
    def list_drivers(cls) -> List[str]:
        """List all registered driver names."""
        return sorted(set(cls._drivers.keys()) | set(cls._driver_factories.keys()))

    @classmethod
    def clear_all(cls) -> None:
        """Clear all registrations (for testing)."""
        cls._drivers.clear()
        cls._driver_factories.clear()
