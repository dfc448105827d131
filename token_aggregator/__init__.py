"""
Token Price Aggregator Service
Values Hive and Hive-Engine token holdings by pricing many tokens concurrently.
"""

__version__ = "1.0.0"
__author__ = "Token Price Aggregator Team"
__description__ = "Bounded-concurrency token pricing service with retry and partial-failure tolerance"
