"""
Device and pipeline commands for motion display.

Commands for real-time mode, rates, encode quality and status.
"""

import logging

from motion_display.commands.base import get_registry, register_command

logger = logging.getLogger(__name__)


@register_command
def set_real_time_mode(app, enable: bool = True) -> dict:
    """
    Switch device real-time display mode.

    The app-side flag only changes if at least one device acknowledged.
    """
    results = app.dispatcher.set_real_time_mode(bool(enable))
    succeeded = sum(1 for ok in results.values() if ok)
    return {
        "status": "success" if succeeded > 0 else "error",
        "real_time": app.dispatcher.real_time_enabled,
        "succeeded": succeeded,
        "total": len(results),
        "devices": results,
    }


@register_command
def set_fps(app, fps: int) -> dict:
    """Set the render tick rate (clamped to 1-120)."""
    effective = app.loop.set_fps(int(fps))
    return {"status": "success", "fps": effective}


@register_command
def set_device_interval(app, seconds: float) -> dict:
    """Set the minimum interval between device sends."""
    effective = app.loop.set_device_interval(float(seconds))
    return {"status": "success", "device_interval": effective}


@register_command
def set_quality(app, quality: int) -> dict:
    """Set the JPEG quality (clamped to 1-100)."""
    app.encoder.quality = int(quality)
    return {"status": "success", "quality": app.encoder.quality}


@register_command
def list_devices(app) -> dict:
    """List connected device targets."""
    return {"status": "success", "devices": app.transport.list_targets()}


@register_command
def send_keep_alive(app) -> dict:
    """Ping every device now."""
    results = app.dispatcher.keep_alive()
    return {"status": "success", "devices": results}


@register_command
def start_rendering(app, fps: int = None) -> dict:
    """Start the render loop."""
    effective = app.loop.start(fps)
    return {"status": "success", "fps": effective}


@register_command
def stop_rendering(app) -> dict:
    """Stop the render loop. Dispatches in flight still complete."""
    app.loop.stop()
    return {"status": "success", "state": app.loop.state.value}


@register_command
def get_status(app) -> dict:
    """Pipeline, dispatch and encoder status."""
    status = app.loop.status()
    status['quality'] = app.encoder.quality
    status['devices'] = app.transport.list_targets()
    return {"status": "success", "pipeline": status}


@register_command
def list_commands(app) -> dict:
    """Every registered command with its parameters."""
    return {"status": "success", "commands": get_registry().describe()}
