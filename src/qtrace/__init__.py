"""qtrace - builds the user-mode emulator trace binary for the fuzzing harness."""

__version__ = "0.1.0"
