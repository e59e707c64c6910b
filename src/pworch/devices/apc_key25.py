"""Akai APC Key 25 definition."""

from pworch.models.device import Button, Device, Dial

GRID_LED_STATES = {
    "OFF": 0,
    "GREEN": 1,
    "GREEN_FLASHING": 2,
    "RED": 3,
    "RED_FLASHING": 4,
    "AMBER": 5,
    "AMBER_FLASHING": 6,
}

ON_OFF_LED_STATES = {
    "OFF": 0,
    "ON": 1,
}

GRID_SIZE = 40

# note -> (label, led states)
CONTROL_BUTTONS: dict[int, tuple[str, dict[str, int]]] = {
    64: ("Up", ON_OFF_LED_STATES),
    65: ("Down", ON_OFF_LED_STATES),
    66: ("Left", ON_OFF_LED_STATES),
    67: ("Right", ON_OFF_LED_STATES),
    68: ("Volume", ON_OFF_LED_STATES),
    69: ("Pan", ON_OFF_LED_STATES),
    70: ("Send", ON_OFF_LED_STATES),
    71: ("Device", ON_OFF_LED_STATES),
    81: ("Stop All Clips", {}),
    82: ("Clip Stop", ON_OFF_LED_STATES),
    83: ("Solo", ON_OFF_LED_STATES),
    84: ("Rec Arm", ON_OFF_LED_STATES),
    85: ("Mute", ON_OFF_LED_STATES),
    86: ("Select", ON_OFF_LED_STATES),
    91: ("Play/Pause", {}),
    93: ("Rec", {}),
    98: ("Shift", {}),
}


def _build() -> Device:
    buttons = [
        Button(label=f"Button {note + 1}", channel=0, note=note, led_states=dict(GRID_LED_STATES))
        for note in range(GRID_SIZE)
    ]
    buttons += [
        Button(label=label, channel=0, note=note, led_states=dict(states))
        for note, (label, states) in CONTROL_BUTTONS.items()
    ]
    dials = [
        Dial(label=f"Dial {i + 1}", channel=0, controller=48 + i, range=(0, 127))
        for i in range(8)
    ]
    return Device(
        name="APC Key 25 MIDI",
        buttons=buttons,
        dials=dials,
        keys_channel=1,
        modifier="Shift",
    )


APC_KEY_25 = _build()
