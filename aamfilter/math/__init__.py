from .robustpca import robust_pca, recover_low_rank, RobustRecoveryWarning
