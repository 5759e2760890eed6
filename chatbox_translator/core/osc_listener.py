"""
Listens for avatar state sent by VRChat on the OSC input port.
"""

import logging
import threading
from pythonosc.dispatcher import Dispatcher as OscDispatcher
from pythonosc.osc_server import ThreadingOSCUDPServer

MUTE_SELF_ADDRESS = "/avatar/parameters/MuteSelf"


class OscStateListener:
    """Tracks the in-game mute state so muted speech is not sent anywhere."""

    def __init__(self, settings):
        self.logger = logging.getLogger(__name__)
        self.settings = settings
        self.dispatcher = OscDispatcher()
        self.dispatcher.map(MUTE_SELF_ADDRESS, self.handle_mute)
        self.server = None
        self.thread = None
        self._muted = threading.Event()

    @property
    def muted(self):
        return self._muted.is_set()

    def handle_mute(self, address, *args):
        muted = bool(args[0]) if args else False
        if muted != self.muted:
            self.logger.info(f"Microphone {'muted' if muted else 'unmuted'} in VRChat")
        if muted:
            self._muted.set()
        else:
            self._muted.clear()

    def start(self):
        """
        Start serving on the input port.

        Returns:
            True if the listener is running; failure to bind is logged and
            leaves the pipeline running without mute tracking
        """
        address = (self.settings.osc_address, self.settings.osc_input_port)
        try:
            self.server = ThreadingOSCUDPServer(address, self.dispatcher)
        except OSError as e:
            self.logger.error(f"Could not listen for OSC on {address[0]}:{address[1]}: {e}")
            self.server = None
            return False

        self.thread = threading.Thread(target=self.server.serve_forever, name="osc-listener", daemon=True)
        self.thread.start()
        self.logger.info(f"Listening for OSC state on {address[0]}:{address[1]}")
        return True

    def stop(self):
        if self.server is None:
            return
        self.server.shutdown()
        self.server.server_close()
        if self.thread is not None:
            self.thread.join(timeout=1.0)
        self.server = None
        self.thread = None
        self.logger.info("OSC listener stopped")
