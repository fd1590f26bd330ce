import sys

import requests


def check_workers(coordinator_url: str = "http://localhost:3000"):
    try:
        response = requests.get(f"{coordinator_url}/stats", timeout=5)
        if response.status_code == 200:
            stats = response.json()
            print("📊 Cluster Stats:")
            print(f"   Workers: {stats['total_workers']} ({stats['source']})")
            print(f"   Last Refreshed: {stats['last_refreshed'] or 'never'}")
            print(f"   Runs Completed: {stats['runs_completed']}")
            print(f"   Failed Tasks: {stats['tasks_failed']}")
        else:
            print(f"Failed to get stats: {response.status_code}")
            return None

        response = requests.get(f"{coordinator_url}/clusters/available", timeout=30)
        response.raise_for_status()
        workers = response.json()
        for worker in workers:
            print(f"   🤖 {worker['ip']}:{worker['port']}")
        return workers
    except requests.RequestException as e:
        print(f"Error: {e}")
        return None


if __name__ == "__main__":
    check_workers(*sys.argv[1:2])
