"""
Switches for turning individual path following stages on and off.

Running FollowPath with a stage bypassed shows how much that stage
contributes to tracking: the Ramsete correction, the characterized wheel
feedforward, or the wheel velocity PID.
"""

from dataclasses import asdict, dataclass
import argparse
import sys


@dataclass
class ComponentMode:
    """Which FollowPath stages are active."""

    # Pose tracking; when off the trajectory velocities are used as-is
    use_ramsete: bool = True

    # Wheel velocity loop terms
    use_feedforward: bool = True
    use_pid: bool = True

    def __str__(self):
        """Short label such as 'Ramsete → Wheels(FF+PID)'."""
        outer = "Ramsete" if self.use_ramsete else "Reference Tracking"

        terms = [
            name
            for name, active in (("FF", self.use_feedforward), ("PID", self.use_pid))
            if active
        ]
        inner = f"Wheels({'+'.join(terms)})" if terms else "Wheels(Off)"

        return f"{outer} → {inner}"

    def to_dict(self):
        return asdict(self)


def parse_component_flags(args=None):
    """
    Pull the stage bypass flags out of a command line.

    Args:
        args: Arguments to parse. Default: sys.argv[1:]

    Returns:
        tuple: (ComponentMode, list of arguments left for the main parser)
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument('--no-ramsete', action='store_true',
                        help='Follow the trajectory velocities without Ramsete correction')
    parser.add_argument('--no-feedforward', action='store_true',
                        help='Drop the kS/kV/kA wheel feedforward')
    parser.add_argument('--no-pid', action='store_true',
                        help='Drop the wheel velocity PID')

    flags, remaining = parser.parse_known_args(sys.argv[1:] if args is None else args)

    mode = ComponentMode(
        use_ramsete=not flags.no_ramsete,
        use_feedforward=not flags.no_feedforward,
        use_pid=not flags.no_pid,
    )
    return mode, remaining
