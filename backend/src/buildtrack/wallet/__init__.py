"""Wallet ledger: payments, reimbursements and advances to users."""
