#!/usr/bin/env python3
"""
Example of storing an applicant's identity and preparing circuit arguments.
"""
import os

from confkyc_sdk.identity import PII, PIIStore


def main():
    """
    Demonstrate the local identity store.

    Personal data is encrypted with a master key kept in the OS keyring
    (or CONFKYC_MASTER_KEY when CI=true) and never leaves this machine.
    """
    store = PIIStore(os.environ.get("CONFKYC_PII_PATH"))

    pii = store.load()
    if pii is None:
        pii = PII(full_name="Ada Lovelace", birth_year=1990, country="United Kingdom")
        store.save(pii)
        print("Saved a new identity record")

    year, min_age, payload = pii.age_eligibility_args()
    print(f"Age proof: born {payload.birth_year}, checked in {year} against {min_age}")
    required_country, _ = pii.residency_args()
    print(f"Residency proof: country hash {required_country.hex()}")


if __name__ == "__main__":
    main()
