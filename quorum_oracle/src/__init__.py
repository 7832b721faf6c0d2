"""
Quorum Price Oracle - Decentralized Price Reporting Module

This module provides quorum-based price aggregation across reporter nodes:
- NodeRegistry: Registered reporter identities
- OracleLedger: Per-asset rounds, submissions, quorum and finalization
- aggregate_submissions: Averaging of a finalized round
- TransactionDriver: Intent submission and confirmation
- ReporterAgent: Node registration and submission loop
- OracleNetwork: Runs a group of nodes with their HTTP servers
- fetchers: Price source implementations
"""

from .Aggregator import RoundAggregate, Submission, aggregate_submissions
from .errors import (
    AlreadyRegistered,
    ConfirmationFailed,
    ConfirmationTimeout,
    DuplicateSubmission,
    LedgerError,
    NotRegistered,
    OracleError,
    RegistrationFailed,
    SubmissionRejected,
    TransactionError,
)
from .fetchers import FetchFailed
from .LedgerClient import LedgerClient, TxOptions, TxReceipt
from .LedgerClientLocal import LedgerClientLocal, LocalChain
from .OracleNetwork import OracleNetwork
from .Registry import NodeRegistry
from .ReporterAgent import PRICE_DECIMALS, ReporterAgent, scale_price
from .RoundLedger import FinalizationEvent, OracleLedger, Round, quorum
from .TransactionDriver import TransactionDriver
from .TxIntent import RegisterIntent, SubmitPriceIntent, TxIntent, UnregisterIntent

__all__ = [
    "AlreadyRegistered",
    "ConfirmationFailed",
    "ConfirmationTimeout",
    "DuplicateSubmission",
    "FetchFailed",
    "FinalizationEvent",
    "LedgerClient",
    "LedgerClientLocal",
    "LedgerError",
    "LocalChain",
    "NodeRegistry",
    "NotRegistered",
    "OracleError",
    "OracleLedger",
    "OracleNetwork",
    "PRICE_DECIMALS",
    "RegisterIntent",
    "RegistrationFailed",
    "ReporterAgent",
    "Round",
    "RoundAggregate",
    "Submission",
    "SubmissionRejected",
    "SubmitPriceIntent",
    "TransactionDriver",
    "TransactionError",
    "TxIntent",
    "TxOptions",
    "TxReceipt",
    "UnregisterIntent",
    "aggregate_submissions",
    "quorum",
    "scale_price",
]
