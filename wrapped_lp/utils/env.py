import os
from typing import TypeVar, Type, Optional

from dotenv import load_dotenv

load_dotenv()

T = TypeVar("T")


def get_env_variable(name: str, type_: Type[T], default: Optional[T]) -> T:
    """Type-safe wrapper for `os.getenv`.

    Args:
        name (str): Name of the environment variable.
        type_ (Type[T]): Type of the environment variable.
        default (T): Default value if the environment variable is not set.

    Returns:
        T: Value of the environment variable.

    Usage:
        ```python
        from wrapped_lp.utils.env import get_env_variable

        # Get an integer environment variable with a default value.
        get_env_variable("CORRECTION_THRESHOLD_PPT", int, 500)
        ```
    """

    try:
        value = os.getenv(name, default)
        return type_.__call__(value)
    except ValueError:
        raise ValueError(
            f"Environment variable '{name}' is not of type '{type_.__name__}'."
        )
    except TypeError:
        raise TypeError(
            f"Environment variable '{name}' is not set and has no default value."
        )


MAINNET_RPC = get_env_variable(
    name="MAINNET_RPC",
    type_=str,
    default="https://eth.llamarpc.com",
)
BASE_RPC = get_env_variable(
    name="BASE_RPC",
    type_=str,
    default="https://base.llamarpc.com",
)

# Rebalancer configuration
CORRECTION_THRESHOLD_PPT = get_env_variable(
    name="CORRECTION_THRESHOLD_PPT",
    type_=int,
    default=500,
)
PERFORMANCE_FEE_BPS = get_env_variable(
    name="PERFORMANCE_FEE_BPS",
    type_=int,
    default=1000,
)
MAX_PERFORMANCE_FEE_BPS = get_env_variable(
    name="MAX_PERFORMANCE_FEE_BPS",
    type_=int,
    default=2000,
)
FEE_RECIPIENT = get_env_variable(
    name="FEE_RECIPIENT",
    type_=str,
    default="treasury",
)

# Simulation configuration
LOG_LEVEL = get_env_variable(
    name="LOG_LEVEL",
    type_=str,
    default="INFO",
)
