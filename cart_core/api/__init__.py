# cart_core/api/__init__.py
