"""wellknown: readiness controller for the OAuth well-known discovery endpoint."""

__version__ = "0.1.0"

# Lazy imports keep the kubernetes client out of lightweight CLI commands
__all__ = [
    "WellKnownReadyController",
    "ConditionAggregator",
    "RouteReconciler",
    "AddressResolver",
    "DiscoveryVerifier",
    "ControllerConfig",
]

def __getattr__(name):
    if name == "WellKnownReadyController":
        from .controller import WellKnownReadyController
        return WellKnownReadyController
    elif name == "ConditionAggregator":
        from .conditions import ConditionAggregator
        return ConditionAggregator
    elif name == "RouteReconciler":
        from .route import RouteReconciler
        return RouteReconciler
    elif name == "AddressResolver":
        from .addresses import AddressResolver
        return AddressResolver
    elif name == "DiscoveryVerifier":
        from .verifier import DiscoveryVerifier
        return DiscoveryVerifier
    elif name == "ControllerConfig":
        from .models import ControllerConfig
        return ControllerConfig
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
