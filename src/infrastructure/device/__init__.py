"""Device environment infrastructure."""
from infrastructure.device.probe import DeviceEnvironment, LocalDeviceEnvironment

__all__ = [
    'DeviceEnvironment',
    'LocalDeviceEnvironment',
]
