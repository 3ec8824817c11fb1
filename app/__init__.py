"""
                Aamis Kitchen Storefront

Backend for a small chain of cloud kitchens: catalog, delivery slots,
phone OTP login, checkout, admin, an API gateway and ONDC endpoints,
with hybrid Mock/Real provider architecture.

Author: Khalil_Bannouri
Version: 4.0.0
License: MIT
"""

__version__ = "4.0.0"
__author__ = "Khalil_Bannouri"
