from .capability import ProcessRecognitionCapability
from .permission import PulseAudioPermissionProbe

__all__ = ["ProcessRecognitionCapability", "PulseAudioPermissionProbe"]
