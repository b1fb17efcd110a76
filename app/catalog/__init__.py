"""
Catalog app: the purchasable side of the marketplace.

This app holds:
- OwnerAccount: the seller receiving the owner net of each sale
- Product: a priced, scheduled stream that viewers buy access to
- Viewer: the payer identity, resolved by email at checkout

Related apps:
    - paywall: purchases reference a Product and a Viewer
"""
