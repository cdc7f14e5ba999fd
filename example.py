#!/usr/bin/env python3
"""
Example usage of the lenia package.
"""

from lenia import ParameterSet, RunController
from lenia.core.sinks import MemoryFrameSink


def main():
    """Run the 3D preset and report how it ended."""
    params = ParameterSet.preset("3d", num_frames=10, seed=1)
    print("Parameters:")
    for key, value in params.to_dict().items():
        print(f"  {key}: {value}")
    print()

    sink = MemoryFrameSink()
    controller = RunController(params, verbose=True)
    result = controller.run(sink)

    print()
    print(f"Classification: {result.classification.value}")
    print(f"Frames emitted: {result.actual_frame_count}")
    for frame in sink.frames:
        print(f"  Generation {frame.generation}: {len(frame)} cells, mass {frame.total_mass:.2f}")

    print("Final statistics:")
    for key, value in result.to_dict().items():
        if isinstance(value, list):
            continue
        print(f"  {key}: {value}")


if __name__ == "__main__":
    main()
