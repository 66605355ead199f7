# Poolmap: Cardano stake pool map backend
