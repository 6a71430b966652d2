#!/usr/bin/env python3
"""
Compare a slurry scenario with and without a surface crust on storage.

A crust on stored slurry changes the N2O factor for cattle and pigs. The
rest of the chain is unchanged, so only storage N2O (and the N left after
storage) should differ between the two runs.
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from emep_mms import InventoryEngine, build_input

SCENARIO = {
    "animal_type": "dairy_cattle",
    "animal_number": 100,
    "fraction_manure_slurry": 0.8,
    "fraction_manure_solid": 0.2,
    "fraction_storage_slurry": 0.9,
    "fraction_biogas_slurry": 0.0,
    "fraction_storage_solid": 1.0,
    "fraction_biogas_solid": 0.0,
    "application_methods": {"slurry": {"trailing_hose": 0.6, "injection": 0.4}},
}


def main():
    engine = InventoryEngine(check=True)
    results = {}
    for crust in (False, True):
        record, valid, messages = build_input({**SCENARIO, "slurry_crust": crust})
        if not valid:
            print("\n".join(messages))
            sys.exit(1)
        results[crust] = engine.run(record)

    print(f"Slurry crust comparison: {SCENARIO['animal_type']} x {SCENARIO['animal_number']}")
    print("=" * 60)
    print(f"{'':<28} {'No crust':>14} {'Crust':>14}")
    print("-" * 60)
    rows = [
        ("Storage N2O-N (kg)", lambda r: r["storage"]["n2o_n"]),
        ("Storage slurry N after (kg)", lambda r: r["storage"]["slurry"]["n_after"]),
        ("Total NH3-N (kg)", lambda r: r["total"]["nh3_n"]),
        ("Total N2O (kg)", lambda r: r["total"]["n2o"]),
    ]
    for label, value in rows:
        print(f"{label:<28} {value(results[False]):>14,.1f} {value(results[True]):>14,.1f}")


if __name__ == "__main__":
    main()
