"""Pure verification kernel: digests, git state, security verdicts, re-verification.

Nothing in this package talks to the network.
"""
