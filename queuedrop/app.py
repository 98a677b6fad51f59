from __future__ import annotations

# Single-entrypoint runner.
#
#     python -m queuedrop.app manager --demo-queue main
#     python -m queuedrop.app customer --name Ada --queue-slug main --watch
#     python -m queuedrop.app staff call-next --queue-id <id>
#     python -m queuedrop.app generator --rate 6 --queue-slug main
#
# Each subcommand forwards to the matching module's own `main()`, so the
# modules stay runnable on their own as well.

import argparse
import sys
from typing import Callable


def main() -> None:
    parser = argparse.ArgumentParser(description="QueueDrop walk-in queues (MQTT) - main entrypoint")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_mqtt_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--mqtt-host", default="127.0.0.1")
        p.add_argument("--mqtt-port", type=int, default=1883)
        p.add_argument("--namespace", default="queuedrop/v1")

    p_mgr = sub.add_parser("manager", help="Start the queue manager and auto-expiry sweeper")
    add_mqtt_args(p_mgr)
    p_mgr.add_argument("--sweep-every", type=float, default=30.0)
    p_mgr.add_argument("--near-front-mode", choices=["once", "always"], default="once")
    p_mgr.add_argument("--demo-queue", metavar="SLUG", default=None)
    p_mgr.add_argument("--log-level", default="INFO")

    p_cust = sub.add_parser("customer", help="Join a queue or check a token's position")
    add_mqtt_args(p_cust)
    p_cust.add_argument("--name", default=None)
    p_cust.add_argument("--token", default=None)
    p_cust.add_argument("--queue-id", default=None)
    p_cust.add_argument("--queue-slug", default=None)
    p_cust.add_argument("--party-size", type=int, default=None)
    p_cust.add_argument("--notes", default=None)
    p_cust.add_argument("--watch", action="store_true")

    p_staff = sub.add_parser("staff", help="Staff console: call next, serve, no-show, ...")
    add_mqtt_args(p_staff)
    p_staff.add_argument("action")
    p_staff.add_argument("--queue-id", default=None)
    p_staff.add_argument("--customer-id", default=None)
    p_staff.add_argument("--settings", default=None)
    p_staff.add_argument("--staff-id", default="desk")
    p_staff.add_argument("--retries", type=int, default=3)

    p_gen = sub.add_parser("generator", help="(load test) Poisson stream of joins")
    add_mqtt_args(p_gen)
    p_gen.add_argument("--rate", type=float, required=True, help="λ joins/minute")
    p_gen.add_argument("--queue-id", default=None)
    p_gen.add_argument("--queue-slug", default=None)
    p_gen.add_argument("--max-customers", type=int, default=None)
    p_gen.add_argument("--seed", type=int, default=None)

    args = parser.parse_args()
    mqtt_argv = ["--mqtt-host", args.mqtt_host, "--mqtt-port", str(args.mqtt_port), "--namespace", args.namespace]

    if args.cmd == "manager":
        from .manager import main as run

        run_argv = mqtt_argv + [
            "--sweep-every",
            str(args.sweep_every),
            "--near-front-mode",
            args.near_front_mode,
            "--log-level",
            args.log_level,
        ]
        run_argv += _opt("--demo-queue", args.demo_queue)
        _dispatch_to_module_main(run, run_argv)
        return

    if args.cmd == "customer":
        from .customer import main as run

        run_argv = mqtt_argv + _opt("--name", args.name) + _opt("--token", args.token)
        run_argv += _opt("--queue-id", args.queue_id) + _opt("--queue-slug", args.queue_slug)
        run_argv += _opt("--party-size", args.party_size) + _opt("--notes", args.notes)
        if args.watch:
            run_argv.append("--watch")
        _dispatch_to_module_main(run, run_argv)
        return

    if args.cmd == "staff":
        from .staff import main as run

        run_argv = [args.action] + mqtt_argv + ["--staff-id", args.staff_id, "--retries", str(args.retries)]
        run_argv += _opt("--queue-id", args.queue_id) + _opt("--customer-id", args.customer_id)
        run_argv += _opt("--settings", args.settings)
        _dispatch_to_module_main(run, run_argv)
        return

    if args.cmd == "generator":
        from .generator import main as run

        run_argv = mqtt_argv + ["--rate", str(args.rate)]
        run_argv += _opt("--queue-id", args.queue_id) + _opt("--queue-slug", args.queue_slug)
        run_argv += _opt("--max-customers", args.max_customers) + _opt("--seed", args.seed)
        _dispatch_to_module_main(run, run_argv)
        return


def _opt(flag: str, value: object) -> list[str]:
    return [] if value is None else [flag, str(value)]


def _dispatch_to_module_main(module_main: Callable[[], None], argv: list[str]) -> None:
    old_argv = sys.argv[:]
    try:
        sys.argv = [old_argv[0], *argv]
        module_main()
    finally:
        sys.argv = old_argv


if __name__ == "__main__":
    main()
