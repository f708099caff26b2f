"""HTTP routers: the operation catalogue and the payment webhook."""
