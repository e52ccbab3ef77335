"""Configure Flag Builder.

This module turns a build profile into the command-line tokens passed to
the emulator's configure script.

Design:
    - One token per capability toggle, in table order
    - Repeated toggles are emitted every time they appear (no deduplication)
    - A single --target-list token is appended last
    - Pure and deterministic: equal profiles give equal flag vectors
"""

from typing import Tuple

from ..config.profile import BuildProfile, CapabilityToggle
from ..errors import ConfigurationError

FlagVector = Tuple[str, ...]


class FlagVectorBuilder:
    """Builds configure flag vectors from build profiles."""

    @staticmethod
    def toggle_token(toggle: CapabilityToggle) -> str:
        """Render a single toggle as a configure flag.

        Example:
            >>> FlagVectorBuilder.toggle_token(CapabilityToggle("capstone", True, "internal"))
            '--enable-capstone=internal'
        """
        prefix = "--enable-" if toggle.enabled else "--disable-"
        token = f"{prefix}{toggle.name}"
        if toggle.value is not None:
            token += f"={toggle.value}"
        return token

    def build(self, profile: BuildProfile) -> FlagVector:
        """Build the configure flag vector for a profile.

        Args:
            profile: Build profile to render

        Returns:
            Ordered tuple of configure flags, target flag last

        Raises:
            ConfigurationError: If the profile's target is empty
        """
        target = profile.target()
        if not target:
            raise ConfigurationError(
                f"Build profile '{profile.name}' has an empty target identifier"
            )

        flags = [self.toggle_token(toggle) for toggle in profile.toggles()]
        flags.append(f"--target-list={target}")
        return tuple(flags)
