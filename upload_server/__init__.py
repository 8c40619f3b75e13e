"""HTTP upload server for XMPP external upload (Prosody, ejabberd, Metronome)."""

__version__ = "0.1.0"
