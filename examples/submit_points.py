import json
import random
import sys

import requests


def random_points(count: int = 8, seed: int = 42):
    rng = random.Random(seed)
    return [
        {"x": rng.uniform(-10, 10), "y": rng.uniform(-10, 10), "z": rng.uniform(-10, 10)}
        for _ in range(count)
    ]


def submit_points(points, coordinator_url: str = "http://localhost:3000"):
    print(f"Submitting {len(points)} points...")
    response = requests.post(
        f"{coordinator_url}/tasks/submit",
        json={"points": points},
        timeout=600,
    )

    if response.status_code != 200:
        print(f"Failed to submit points: {response.status_code}")
        print(response.text)
        return None

    result = response.json()
    report = result["report"]
    print(f"Mode: {report['mode']}, tasks: {report['tasks_total']}, failed: {report['tasks_failed']}")
    print(f"Obtuse triangles: {len(result['data'])}")
    for triangle in result["data"]:
        print(f"   angles={[round(a, 2) for a in triangle['angles']]} area={triangle['area']:.3f}")
    return result


if __name__ == "__main__":
    if len(sys.argv) > 1:
        with open(sys.argv[1], encoding="utf-8") as f:
            points = json.load(f)["points"]
    else:
        points = random_points()
    submit_points(points)
