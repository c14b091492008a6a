import random
from datetime import datetime, timezone

from pagetally.events import Event
from pagetally.synthetic import seed_personas
from pagetally.synthetic.personas import bouncer, reader, skimmer
from pagetally.workers.filters import split_events
from pagetally.workers.metrics import compute_stats

NOW = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)  # a Monday


def stats_for(*payloads):
    events = [Event.model_validate({**p, "ip": "203.0.113.1"}) for p in payloads]
    filtered = split_events(events, ["203.0.113.1"])
    return compute_stats(filtered.page_views, filtered.exit_events, filtered.distinct_ips)


def test_deterministic_with_seed():
    assert reader(rng=random.Random(3), now=NOW) == reader(rng=random.Random(3), now=NOW)


def test_reader_never_bounces():
    out = stats_for(*reader(rng=random.Random(1), now=NOW))
    assert out.total_views == 4
    assert out.bounce_rate == 0
    assert out.returning_visitors == 4
    assert out.avg_time_on_page >= 60
    assert [h.model_dump() for h in out.visits_by_hour] == [{"hour": 14, "count": 4}]
    assert out.visits_by_day[0].day == "Monday"


def test_bouncers_always_bounce():
    rng = random.Random(2)
    payloads = [ev for i in range(3) for ev in bouncer(vid=f"b{i}", rng=rng, now=NOW)]
    out = stats_for(*payloads)
    assert out.bounce_rate == 100
    assert out.new_visitors == 3
    assert out.unique_visitors == 3


def test_skimmer_last_page_has_no_exit():
    events = skimmer(pages=3, rng=random.Random(4), now=NOW)
    assert len(events) == 5
    assert events[-1].get("eventType") is None


def test_seed_main_posts_every_event(monkeypatch):
    sent = []
    monkeypatch.setattr(seed_personas, "post_one", lambda ev, ip: sent.append((ip, ev)))
    seed_personas.main(seed=1)

    # 5 readers x 8, 10 bouncers x 2, 5 skimmers x 5
    assert len(sent) == 85
    assert all(not ip.startswith("127.") for ip, _ in sent)
