"""Deploys the Bank contract with no constructor arguments.

    $ deployplan inspect examples/modules/bank.py
"""

from deployplan import declare_module


def build_bank(m):
    bank_contract = m.contract("Bank", [])
    return {"bankContract": bank_contract}


bank_module = declare_module("BankModule", build_bank)
