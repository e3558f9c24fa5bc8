"""HTTP exchange recorder: capture middleware, dispatch and app bootstrap."""
