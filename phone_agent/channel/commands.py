"""
Device Command Catalog
======================

One-shot commands the phone app understands, with their parameters.

The catalog backs the ``/commands`` API: it lists what can be sent and
validates required parameters and enumerated values before a command
reaches the store.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(frozen=True)
class ParamDef:
    """A command parameter."""

    type: str
    description: str
    required: bool = False
    enum: Optional[tuple[str, ...]] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "description": self.description,
            "required": self.required,
        }
        if self.enum:
            data["enum"] = list(self.enum)
        return data


@dataclass(frozen=True)
class CommandDef:
    """A device command and its parameters."""

    name: str
    description: str
    parameters: dict[str, ParamDef] = field(default_factory=dict)

    @property
    def required_params(self) -> list[str]:
        return [name for name, param in self.parameters.items() if param.required]

    def validate(self, params: dict[str, Any]) -> list[str]:
        """
        Check parameters against the definition.

        Args:
            params: Parameters supplied by the caller.

        Returns:
            Human-readable problems, empty when the parameters are valid.
        """
        problems = []
        for name in self.required_params:
            if params.get(name) in (None, ""):
                problems.append(f"Missing required parameter: {name}")

        for name, param in self.parameters.items():
            value = params.get(name)
            if value is None or not param.enum:
                continue
            if value not in param.enum:
                problems.append(
                    f"Invalid value for {name}: {value!r} (expected one of {', '.join(param.enum)})"
                )
        return problems

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": {name: param.to_dict() for name, param in self.parameters.items()},
        }


_X = ParamDef("number", "X coordinate on screen", required=True)
_Y = ParamDef("number", "Y coordinate on screen", required=True)

DIRECTIONS = ("up", "down", "left", "right")
BUTTONS = (
    "home",
    "back",
    "recents",
    "volume_up",
    "volume_down",
    "enter",
    "dpad_up",
    "dpad_down",
    "dpad_left",
    "dpad_right",
)
ORIENTATIONS = ("portrait", "landscape")


PHONE_COMMANDS: dict[str, CommandDef] = {
    command.name: command
    for command in (
        # Gestures
        CommandDef("tap", "Tap at screen coordinates", {"x": _X, "y": _Y}),
        CommandDef("double_tap", "Double-tap at screen coordinates", {"x": _X, "y": _Y}),
        CommandDef(
            "long_press",
            "Long-press at screen coordinates",
            {
                "x": _X,
                "y": _Y,
                "duration_ms": ParamDef("number", "Press duration in ms (default 1000)"),
            },
        ),
        CommandDef(
            "swipe",
            "Perform a swipe gesture",
            {
                "direction": ParamDef("string", "Swipe direction", required=True, enum=DIRECTIONS),
                "start_x": ParamDef("number", "Starting X coordinate"),
                "start_y": ParamDef("number", "Starting Y coordinate"),
                "distance": ParamDef("number", "Swipe distance in pixels"),
            },
        ),
        CommandDef("screenshot", "Capture the screen as a base64 PNG"),
        # App management
        CommandDef("list_apps", "List installed apps (package, name, launcher activity)"),
        CommandDef(
            "launch_app",
            "Launch an app by package name",
            {"package_name": ParamDef("string", "App package name (e.g. com.whatsapp)", required=True)},
        ),
        CommandDef(
            "terminate_app",
            "Kill a background app process",
            {"package_name": ParamDef("string", "App package name to terminate", required=True)},
        ),
        CommandDef(
            "install_app",
            "Install an APK from a path on the device",
            {"apk_path": ParamDef("string", "Path to the APK file on the device", required=True)},
        ),
        CommandDef(
            "uninstall_app",
            "Open the uninstall prompt for an app",
            {"package_name": ParamDef("string", "App package name to uninstall", required=True)},
        ),
        CommandDef(
            "open_url",
            "Open a URL in the default browser",
            {"url": ParamDef("string", "URL to open", required=True)},
        ),
        # Screen interaction
        CommandDef(
            "send_text",
            "Type text into the focused input field",
            {"text": ParamDef("string", "Text to type", required=True)},
        ),
        CommandDef(
            "press_button",
            "Press a system button",
            {"button": ParamDef("string", "Button to press", required=True, enum=BUTTONS)},
        ),
        # Screen info
        CommandDef("get_orientation", "Get the current screen orientation"),
        CommandDef(
            "set_orientation",
            "Lock the screen to an orientation",
            {
                "orientation": ParamDef(
                    "string", "Target orientation", required=True, enum=ORIENTATIONS
                )
            },
        ),
        CommandDef("screen_size", "Get screen width, height and orientation"),
        CommandDef("get_ui_elements", "Get the full accessibility tree of the screen"),
        # Device utility
        CommandDef("ring", "Ring the phone with sound and vibration"),
        CommandDef(
            "vibrate",
            "Vibrate the phone",
            {"duration": ParamDef("number", "Duration in ms (100-10000, default 2000)")},
        ),
        CommandDef(
            "flash",
            "Turn on the camera flashlight",
            {"duration": ParamDef("number", "Duration in ms (500-30000, default 3000)")},
        ),
        CommandDef("device_info", "Get model, API level, battery and connectivity"),
    )
}


def get_command(name: str) -> Optional[CommandDef]:
    """Look up a command by name."""
    return PHONE_COMMANDS.get(name)
