"""HTTP routers mounted by :mod:`storefront.main`."""
