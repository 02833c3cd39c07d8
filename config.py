"""
Configuration file for QRupay application
"""
import os

class Config:
    """Application configuration"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///qrupay.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Origin used to build emergency links; empty means use the request host
    PUBLIC_BASE_URL = os.environ.get('PUBLIC_BASE_URL', '')

    # Emergency QR code rendering
    QR_CODE_WIDTH = int(os.environ.get('QR_CODE_WIDTH', '256'))
    QR_CODE_MARGIN = int(os.environ.get('QR_CODE_MARGIN', '2'))
    QR_CODE_DARK = os.environ.get('QR_CODE_DARK', '#dc2626')
    QR_CODE_LIGHT = os.environ.get('QR_CODE_LIGHT', '#ffffff')

    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
