#!/usr/bin/env python3
"""Example: Place a seat on a moving bus and a passenger on the seat.

This script demonstrates the basic workflow for placement3d:
1. Build parent and child transforms
2. Compose them into world space
3. Invert to get back to local space
4. Export a matrix for a rendering layer

Run with: python examples/hierarchy.py
"""

import numpy as np

from placement3d import NonUniformTransform


def main():
    print("placement3d - Hierarchy Example")
    print("=" * 40)

    # Bus: moved along X, turned 90 degrees, stretched along its length
    print("\n1. Building transforms...")
    bus = (
        NonUniformTransform.from_position(20.0, 0.0, 5.0)
        .rotate_y(np.pi / 2)
        .with_scale((1.0, 1.0, 2.5))
    )
    seat = NonUniformTransform.from_position(0.5, 0.8, 1.2)
    passenger = NonUniformTransform.from_position(0.0, 0.4, 0.0).apply_scale(0.9)

    print(f"   Bus:       {bus}")
    print(f"   Seat:      {seat}")
    print(f"   Passenger: {passenger}")

    # Compose child transforms into world space
    print("\n2. Composing into world space...")
    seat_world = bus @ seat
    passenger_world = seat_world @ passenger
    print(f"   Seat (world):      {seat_world}")
    print(f"   Passenger (world): {passenger_world}")
    print(f"   Passenger faces:   {np.round(passenger_world.forward(), 3)}")

    # Map the world placement back into the bus frame
    print("\n3. Returning to the bus frame...")
    passenger_in_bus = bus.inverse_transform_transform(passenger_world)
    print(f"   Passenger (bus):   {passenger_in_bus}")
    print(f"   Matches seat @ passenger: {passenger_in_bus.is_close(seat @ passenger)}")

    # Matrix for a renderer
    print("\n4. World matrix for rendering...")
    print(np.array2string(passenger_world.to_matrix(), precision=3, suppress_small=True))


if __name__ == "__main__":
    main()
