from __future__ import annotations

# Walk-in generator (load testing).
#
# Simulates a stream of customers joining one queue using the exact same MQTT
# request/response protocol as the interactive `customer` client. Useful for
# watching position fan-out and the sweeper under load.
#
# Arrivals are a Poisson process with rate λ (customers/minute). Party sizes
# are drawn from a small empirical distribution of walk-in groups.

import argparse
import random
import time

from .arrival import sample_interarrival_seconds
from .mqtt_client import MqttClient
from .mqtt_topics import DEFAULT_NAMESPACE, customer_requests, customer_responses

# party size -> relative weight
PARTY_SIZE_WEIGHTS = {1: 45, 2: 30, 3: 10, 4: 10, 5: 3, 6: 2}


def sample_party_size(rng: random.Random | None = None) -> int:
    r = rng or random
    sizes = list(PARTY_SIZE_WEIGHTS)
    return r.choices(sizes, weights=[PARTY_SIZE_WEIGHTS[s] for s in sizes], k=1)[0]


def run_generator(
    *,
    mqtt_host: str,
    mqtt_port: int,
    namespace: str,
    rate_per_minute: float,
    queue_id: str | None = None,
    queue_slug: str | None = None,
    name_prefix: str = "Guest",
    max_customers: int | None = None,
    seed: int | None = None,
) -> None:
    """Generate joins indefinitely (or for max_customers).

    Args:
        rate_per_minute: λ, joins per minute.
        max_customers: if provided, stop after this many join attempts.
        seed: if provided, makes arrivals and party sizes deterministic.
    """
    rng = random.Random(seed) if seed is not None else None

    client_id = f"generator-{int(time.time())}"
    mqtt = MqttClient(client_id=client_id, host=mqtt_host, port=mqtt_port)
    mqtt.start()

    reply_topic = customer_responses(client_id, namespace)
    mqtt.subscribe(reply_topic)

    print(
        f"[generator] connected to MQTT {mqtt_host}:{mqtt_port}, namespace={namespace}, "
        f"rate={rate_per_minute} joins/min"
    )

    target = {"queue_id": queue_id} if queue_id else {"queue_slug": queue_slug}
    i = 0
    try:
        while max_customers is None or i < max_customers:
            dt = sample_interarrival_seconds(rate_per_minute=rate_per_minute, rng=rng)
            time.sleep(dt)

            i += 1
            name = f"{name_prefix}{i}"
            party_size = sample_party_size(rng)

            resp = mqtt.request(
                request_topic=customer_requests(namespace),
                response_topic=reply_topic,
                message={"type": "join_queue", "name": name, "party_size": party_size, **target},
                timeout=5.0,
            )

            if resp.get("type") == "joined":
                print(f"[generator] {name} party={party_size} -> pos {resp['position']} (dt={dt:0.2f}s)")
            else:
                print(f"[generator] {name} -> error {resp.get('code')}: {resp.get('message')} (dt={dt:0.2f}s)")

        print(f"[generator] reached max_customers={max_customers}, stopping")
    except KeyboardInterrupt:
        pass
    finally:
        mqtt.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Walk-in generator (Poisson joins over MQTT)")
    parser.add_argument("--mqtt-host", default="127.0.0.1")
    parser.add_argument("--mqtt-port", type=int, default=1883)
    parser.add_argument("--namespace", default=DEFAULT_NAMESPACE)
    parser.add_argument(
        "--rate",
        type=float,
        required=True,
        help="join rate λ in customers/minute (Poisson process)",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--queue-id")
    target.add_argument("--queue-slug")
    parser.add_argument("--name-prefix", default="Guest")
    parser.add_argument("--max-customers", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    run_generator(
        mqtt_host=args.mqtt_host,
        mqtt_port=args.mqtt_port,
        namespace=args.namespace,
        rate_per_minute=args.rate,
        queue_id=args.queue_id,
        queue_slug=args.queue_slug,
        name_prefix=args.name_prefix,
        max_customers=args.max_customers,
        seed=args.seed,
    )


if __name__ == "__main__":
    main()
