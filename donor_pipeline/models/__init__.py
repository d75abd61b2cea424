"""Job, result and donor-list records."""
