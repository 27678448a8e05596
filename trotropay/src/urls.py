"""
API Endpoint URL Constants

This module defines the URL paths used throughout the application
for accounts, routes, vehicles and payments.

These URLs are relative paths, the API application is mounted under
`API_PREFIX` (see `trotropay.src.constants`).
"""

# -------------------------------
# Account
# -------------------------------
URL_ACCOUNT = "/account"
URL_ACCOUNT_TOKEN = "/account/token"
URL_ACCOUNT_WALLET = "/account/wallet"
URL_ACCOUNT_TOP_UP = "/account/wallet/top-up"

# -------------------------------
# Route
# -------------------------------
URL_ROUTE = "/routes"
URL_ROUTE_ID = "/routes/{routeId}"
URL_ROUTE_BY_NAME = "/routes/by-name/{name}"
URL_ROUTE_CALCULATE_FARE = "/routes/{routeId}/calculate-fare"
URL_ROUTE_VALID_STOPS = "/routes/{routeId}/valid-stops"
URL_ROUTE_FARES = "/routes/{routeId}/fares"
URL_ROUTE_STOPS = "/routes/{routeId}/stops"
URL_ROUTE_STOP_NAME = "/routes/{routeId}/stops/{name}"
URL_ROUTE_STOP_REORDER = "/routes/{routeId}/stops/reorder"

# -------------------------------
# Vehicle
# -------------------------------
URL_VEHICLE = "/vehicles"
URL_VEHICLE_ID = "/vehicles/{vehicleId}"
URL_VEHICLE_ROUTE = "/vehicles/{vehicleId}/route"
URL_VEHICLE_CREW = "/vehicles/{vehicleId}/crew"
URL_VEHICLE_BOARD = "/vehicles/{vehicleId}/board"
URL_VEHICLE_ALIGHT = "/vehicles/{vehicleId}/alight"
URL_VEHICLE_EARNINGS = "/vehicles/{vehicleId}/earnings"
URL_VEHICLE_TRANSACTIONS = "/vehicles/{vehicleId}/transactions"
URL_VEHICLE_DAILY_EARNINGS = "/vehicles/{vehicleId}/earnings/daily"
URL_FLEET_EARNINGS = "/fleet/earnings"

# -------------------------------
# Payment
# -------------------------------
URL_PAYMENT_PROCESS = "/payments/process"
URL_TRANSACTION = "/transactions"
URL_COMMISSION = "/commission"

# -------------------------------
# Notification
# -------------------------------
URL_NOTIFICATION_SOCKET = "/ws"
