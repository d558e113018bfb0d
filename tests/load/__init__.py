"""
Load testing module for ec2auth.

Locust scenario for the Keystone EC2 token exchange, used alongside the
built-in threaded harness (`ec2auth --threads N`).

Usage:
    locust -f tests/load/locustfile.py --host=https://keystone.example.com:5000
"""
