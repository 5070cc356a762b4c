from storefront_api.schemas.shipping import CartItemInput, Destination, Dimensions, QuoteRequest
