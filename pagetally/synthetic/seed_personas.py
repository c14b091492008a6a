import json
import os
import random
import urllib.request

from .personas import bouncer, reader, skimmer

URL = os.environ.get("PAGETALLY_TRACK_URL", "http://127.0.0.1:8123/track")


def post_one(ev, ip):
    # a fake forwarded address keeps the seeded traffic out of the loopback filter
    data = json.dumps(ev).encode("utf-8")
    req = urllib.request.Request(URL, data=data, headers={
        "Content-Type": "application/json",
        "X-Forwarded-For": ip,
    })
    with urllib.request.urlopen(req) as r:
        r.read()


def main(seed=7):
    rng = random.Random(seed)
    visits = []
    for i in range(5):
        visits.append((f"203.0.113.{10 + i}", reader(vid=f"v_reader_{i}", rng=rng)))
    for i in range(10):
        visits.append((f"198.51.100.{20 + i}", bouncer(vid=f"v_bouncer_{i}", rng=rng)))
    for i in range(5):
        visits.append((f"192.0.2.{30 + i}", skimmer(vid=f"v_skimmer_{i}", rng=rng)))

    n = 0
    for ip, events in visits:
        for ev in events:
            post_one(ev, ip)
            n += 1
    print(f"Seeded {n} events across {len(visits)} visitors.")


if __name__ == "__main__":
    main()
