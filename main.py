import argparse
import contextlib
import logging
import os

from connectivity_report import ReportWriter, from_settings
from scenario import SCENARIO_NS, Scenario
from settings import Settings
from simulate import BuildingSim


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run a building connectivity scenario.")
    parser.add_argument("settings", help="scenario settings (JSON)")
    parser.add_argument("--out", default="output_files", help="directory for the reports")
    parser.add_argument("--end-time", type=float, default=None)
    parser.add_argument("--positions", action="store_true", help="also export host positions")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    settings = Settings.from_json(args.settings)
    sc = settings.for_group(SCENARIO_NS)
    scenario = Scenario.from_settings(settings)
    hosts = scenario.build_hosts()

    os.makedirs(args.out, exist_ok=True)
    sim = None
    with contextlib.ExitStack() as stack:
        reports = []
        for name in sc.get("reports", []):
            writer = stack.enter_context(ReportWriter(os.path.join(args.out, f"{name}.txt")))
            # clock is bound once the sim exists
            reports.append(
                from_settings(settings.for_group(name), writer, clock=lambda: sim.clock())
            )

        sim = BuildingSim(
            hosts,
            reports,
            transmit_range=sc.get_float("transmitRange", 10.0),
            time_step=sc.get_float("updateInterval", 1.0),
            record_interval=sc.get_float("recordInterval", 60.0) if args.positions else None,
            random_seed=sc.get("seed", None),
        )
        end_time = args.end_time if args.end_time is not None else sc.get_float("endTime", 43200)
        sim.run(end_time)

    if args.positions:
        sim.export_records_to_csv(os.path.join(args.out, "host_positions.csv"))
    print("Done.")


if __name__ == "__main__":
    main()
